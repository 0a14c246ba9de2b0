import pytest

from docpipe.documents.models import Entity
from docpipe.entities.exceptions import EntityExtractionValidationError
from docpipe.entities.validator import validate_and_build


class TestValidateAndBuild:
    def test_builds_entities_in_order(self) -> None:
        result = validate_and_build(
            {
                "entities": [
                    {"text": "2024-01-05", "type": "date", "confidenceScore": 1},
                    {"text": "$50", "type": " Quantity ", "confidenceScore": 0.5},
                ]
            }
        )

        assert result == [
            Entity("2024-01-05", "DATE", 1.0),
            Entity("$50", "QUANTITY", 0.5),
        ]

    def test_empty_list(self) -> None:
        assert validate_and_build({"entities": []}) == []

    @pytest.mark.parametrize(
        "data",
        [
            {},
            {"entities": None},
            {"entities": ["x"]},
            {"entities": [{"text": "", "type": "DATE", "confidenceScore": 1}]},
            {"entities": [{"text": "a", "type": "", "confidenceScore": 1}]},
            {"entities": [{"text": "a", "type": "DATE", "confidenceScore": "high"}]},
            {"entities": [{"text": "a", "type": "DATE", "confidenceScore": True}]},
            {"entities": [{"text": "a", "type": "DATE", "confidenceScore": 1.5}]},
            {"entities": [{"text": "a", "type": "DATE", "confidenceScore": -0.1}]},
        ],
    )
    def test_rejects_invalid(self, data) -> None:
        with pytest.raises(EntityExtractionValidationError):
            validate_and_build(data)

    def test_rejects_too_many(self) -> None:
        entity = {"text": "a", "type": "OTHER", "confidenceScore": 1}
        with pytest.raises(EntityExtractionValidationError, match="Too many"):
            validate_and_build({"entities": [entity] * 501})
