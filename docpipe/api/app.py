from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import BackgroundTasks, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docpipe.config.settings import Settings
from docpipe.database.connection import close_pool, init_pool
from docpipe.documents.exceptions import (
    BadRequestError,
    DocumentNotFoundError,
    StorageUploadFailure,
)
from docpipe.handlers.trigger import object_created_notification
from docpipe.logging.logger import Log
from docpipe.pipeline import Pipeline, build_pipeline
from docpipe.storage.local_storage import LocalBlobStorage


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _pipeline(request: Request) -> Pipeline:
    pipeline: Pipeline | None = request.app.state.pipeline
    if pipeline is None:
        raise RuntimeError("Pipeline not initialized")
    return pipeline


def create_app(settings: Settings | None = None, pipeline: Pipeline | None = None) -> FastAPI:
    """Build the HTTP front door.

    A prebuilt ``pipeline`` is used as is. Otherwise one is built from
    ``settings`` on startup, opening the connection pool for the
    ``postgres`` backend.
    """
    settings = settings or Settings()
    Log.configure(settings.log_level)
    uses_postgres = settings.pipeline_backend.lower() == "postgres"

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owns_pool = False
        if app.state.pipeline is None:
            if uses_postgres:
                init_pool(settings)
                owns_pool = True
            app.state.pipeline = build_pipeline(settings)
        try:
            yield
        finally:
            if owns_pool:
                close_pool()

    app = FastAPI(title="docpipe", lifespan=lifespan)
    app.state.pipeline = pipeline

    allow_origins = list(settings.cors_allow_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials="*" not in allow_origins,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> dict[str, bool]:
        return {"ok": True}

    @app.post("/documents")
    async def ingest_document(request: Request) -> JSONResponse:
        try:
            payload: Any = await request.json()
        except ValueError:
            return _error(400, "Request body must be valid JSON")
        try:
            result = _pipeline(request).ingestion.ingest(payload)
        except BadRequestError as exc:
            return _error(400, str(exc))
        except Exception:
            Log.exception("Ingestion failed")
            return _error(500, "Upload failed")
        return JSONResponse(status_code=200, content=result.to_dict())

    @app.get("/documents/{document_id}")
    def get_document_status(document_id: str, request: Request) -> JSONResponse:
        try:
            body = _pipeline(request).status.get_status(document_id)
        except DocumentNotFoundError:
            return _error(404, "Document not found")
        except Exception:
            Log.exception("Status query failed", document_id=document_id)
            return _error(500, "Failed to get status")
        return JSONResponse(status_code=200, content=body)

    @app.put("/uploads/{key:path}")
    async def upload_object(
        key: str,
        request: Request,
        background_tasks: BackgroundTasks,
        expires: int = Query(...),
        signature: str = Query(...),
    ) -> JSONResponse:
        pipeline = _pipeline(request)
        storage = pipeline.storage
        if not isinstance(storage, LocalBlobStorage):
            return _error(404, "Uploads are not served by this storage backend")
        try:
            storage.verify_write(key, expires, signature)
        except StorageUploadFailure as exc:
            Log.warning(f"Rejected upload: {exc}")
            return _error(403, "Invalid or expired upload location")

        data = await request.body()
        try:
            storage.write(key, data)
            document_ids = pipeline.trigger.handle_notification(
                object_created_notification(storage.bucket, key)
            )
        except Exception:
            Log.exception(f"Upload of '{key}' failed")
            return _error(500, "Upload failed")

        # no-op unless the channel is the in-process queue
        background_tasks.add_task(pipeline.drain)
        return JSONResponse(status_code=200, content={"storageKey": key, "documentIds": document_ids})

    return app


app = create_app()
