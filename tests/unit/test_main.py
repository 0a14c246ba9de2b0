from unittest.mock import MagicMock, patch

import pytest

from docpipe.config.settings import Settings
from docpipe.main import main, stale_delivery_seconds


class TestStaleDeliverySeconds:
    def test_twice_the_longest_stage_timeout(self) -> None:
        assert stale_delivery_seconds(Settings(_env_file=None)) == 600

    def test_counts_finalization_timeout(self) -> None:
        settings = Settings(finalization_timeout_seconds=900, _env_file=None)
        assert stale_delivery_seconds(settings) == 1800


class TestMain:
    def test_refuses_memory_backend(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PIPELINE_BACKEND", "memory")
        with patch("docpipe.main.init_pool") as mock_init:
            with pytest.raises(SystemExit):
                main()
        mock_init.assert_not_called()

    def test_wires_worker_and_closes_pool(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PIPELINE_BACKEND", "postgres")
        with (
            patch("docpipe.main.init_pool") as mock_init,
            patch("docpipe.main.close_pool") as mock_close,
            patch("docpipe.main.build_pipeline") as mock_build,
            patch("docpipe.main.Worker") as mock_worker_cls,
        ):
            main()

        mock_init.assert_called_once()
        mock_build.assert_called_once()
        mock_worker_cls.return_value.run.assert_called_once_with()
        mock_close.assert_called_once()

    def test_closes_pool_on_error(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PIPELINE_BACKEND", "postgres")
        with (
            patch("docpipe.main.init_pool"),
            patch("docpipe.main.close_pool") as mock_close,
            patch("docpipe.main.build_pipeline", side_effect=ValueError("bad engine")),
        ):
            with pytest.raises(ValueError):
                main()

        mock_close.assert_called_once()
