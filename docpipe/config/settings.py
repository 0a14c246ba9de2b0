from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    pipeline_backend: str = "postgres"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "docpipe"
    db_username: str = "docpipe"
    db_password: str = "secret"

    max_event_attempts: int = 3
    event_poll_interval_seconds: int = 5
    stale_requeue_idle_polls: int = 60

    storage_root: str = "/app/files"
    storage_bucket: str = "docpipe-documents"
    public_base_url: str = "http://localhost:8000"
    upload_url_ttl_seconds: int = 300
    upload_signing_secret: str = "change-me"

    pdf_engine: str = "pdfplumber"

    entity_provider: str = "openai"
    entity_openai_api_key: str = ""
    entity_openai_model_name: str = "gpt-4o-mini"
    entity_openai_timeout_seconds: int = 30
    entity_openai_compatible_base_url: str = ""
    entity_openai_compatible_api_key: str = ""
    entity_openai_compatible_model_name: str = ""

    extraction_timeout_seconds: float = 300
    classification_timeout_seconds: float = 180
    summarization_timeout_seconds: float = 180
    finalization_timeout_seconds: float | None = None
    finalization_stale_claim_seconds: float = 60

    cors_allow_origins: list[str] = ["*"]
