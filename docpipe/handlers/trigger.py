from typing import Any
from urllib.parse import quote_plus, unquote_plus

from docpipe.events.base import BaseEventChannel
from docpipe.events.models import DOCUMENT_UPLOADED, UPLOAD_SOURCE
from docpipe.logging.logger import Log

UPLOAD_PREFIX = "documents"


def object_created_notification(bucket: str, key: str) -> dict[str, Any]:
    """Build an object-created notification in the shape blob storage emits.

    Keys are URL-encoded the way object storage encodes them in notifications.
    """
    return {
        "Records": [
            {
                "eventName": "ObjectCreated:Put",
                "s3": {"bucket": {"name": bucket}, "object": {"key": quote_plus(key, safe="/")}},
            }
        ]
    }


def parse_document_id(key: str) -> str | None:
    """Recover the document id from ``documents/{documentId}/{fileName}``."""
    parts = key.split("/")
    if len(parts) >= 3 and parts[0] == UPLOAD_PREFIX and parts[1] and parts[-1]:
        return parts[1]
    return None


class StorageArrivalTrigger:
    """Starts the pipeline once the raw file has landed in blob storage."""

    def __init__(self, channel: BaseEventChannel) -> None:
        self._channel = channel

    def handle_notification(self, notification: dict[str, Any]) -> list[str]:
        """Publish ``Document Uploaded`` for each created object under the upload prefix.

        Returns the document ids the pipeline was started for. Records for
        other event kinds or keys of another shape are skipped.
        """
        triggered: list[str] = []
        for record in notification.get("Records", []):
            if not str(record.get("eventName", "")).startswith("ObjectCreated"):
                continue
            bucket = record["s3"]["bucket"]["name"]
            key = unquote_plus(record["s3"]["object"]["key"])
            document_id = parse_document_id(key)
            if document_id is None:
                Log.debug(f"Ignoring object '{key}' outside the upload layout")
                continue
            self._channel.publish(
                UPLOAD_SOURCE,
                DOCUMENT_UPLOADED,
                {"documentId": document_id, "storageKey": key, "bucketIdentifier": bucket},
            )
            Log.info(f"Upload of '{key}' landed, pipeline started", document_id=document_id)
            triggered.append(document_id)
        return triggered
