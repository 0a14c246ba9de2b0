from unittest.mock import MagicMock

from docpipe.handlers.trigger import (
    StorageArrivalTrigger,
    object_created_notification,
    parse_document_id,
)


class TestParseDocumentId:
    def test_upload_layout(self) -> None:
        assert parse_document_id("documents/abc/invoice.pdf") == "abc"

    def test_other_prefix(self) -> None:
        assert parse_document_id("exports/abc/invoice.pdf") is None

    def test_too_short(self) -> None:
        assert parse_document_id("documents/abc") is None


class TestHandleNotification:
    def test_publishes_document_uploaded(self) -> None:
        channel = MagicMock()
        trigger = StorageArrivalTrigger(channel)

        ids = trigger.handle_notification(
            object_created_notification("bucket", "documents/abc/invoice.pdf")
        )

        assert ids == ["abc"]
        channel.publish.assert_called_once_with(
            "idp.upload",
            "Document Uploaded",
            {
                "documentId": "abc",
                "storageKey": "documents/abc/invoice.pdf",
                "bucketIdentifier": "bucket",
            },
        )

    def test_decodes_url_encoded_keys(self) -> None:
        channel = MagicMock()
        notification = {
            "Records": [
                {
                    "eventName": "ObjectCreated:Put",
                    "s3": {
                        "bucket": {"name": "bucket"},
                        "object": {"key": "documents/abc/my+scan%282%29.pdf"},
                    },
                }
            ]
        }

        StorageArrivalTrigger(channel).handle_notification(notification)

        detail = channel.publish.call_args[0][2]
        assert detail["storageKey"] == "documents/abc/my scan(2).pdf"

    def test_notification_builder_round_trips_plus_signs(self) -> None:
        channel = MagicMock()

        StorageArrivalTrigger(channel).handle_notification(
            object_created_notification("bucket", "documents/abc/a+b c.pdf")
        )

        assert channel.publish.call_args[0][2]["storageKey"] == "documents/abc/a+b c.pdf"

    def test_ignores_other_events_and_keys(self) -> None:
        channel = MagicMock()
        notification = {
            "Records": [
                {
                    "eventName": "ObjectRemoved:Delete",
                    "s3": {"bucket": {"name": "b"}, "object": {"key": "documents/x/a.pdf"}},
                },
                {
                    "eventName": "ObjectCreated:Put",
                    "s3": {"bucket": {"name": "b"}, "object": {"key": "thumbnails/x.png"}},
                },
            ]
        }

        assert StorageArrivalTrigger(channel).handle_notification(notification) == []
        channel.publish.assert_not_called()

    def test_handles_every_record(self) -> None:
        channel = MagicMock()
        records = (
            object_created_notification("b", "documents/one/a.pdf")["Records"]
            + object_created_notification("b", "documents/two/b.pdf")["Records"]
        )

        ids = StorageArrivalTrigger(channel).handle_notification({"Records": records})

        assert ids == ["one", "two"]
        assert channel.publish.call_count == 2
