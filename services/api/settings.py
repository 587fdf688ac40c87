# services/api/settings.py
from pydantic_settings import BaseSettings
from pydantic import ConfigDict, Field
from typing import List
from pathlib import Path


class Settings(BaseSettings):
    # Record storage (documents / signatures / audit_logs)
    db_url: str = "sqlite:///data/signdesk.db"

    # Object storage: local buckets published under public_base_url
    blob_root: str = "data/blobs"
    public_base_url: str = "http://localhost:8000/files"
    documents_bucket: str = "documents"
    signed_bucket: str = "signed-documents"
    fetch_timeout_s: float = 30.0

    # CORS settings
    allowed_origins: str = "http://localhost:5173,http://localhost:3000"

    # Upload limits
    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_content_types: str = "application/pdf"

    # Editor sessions (in-memory placement stores)
    editor_session_ttl_s: float = 3600.0
    editor_session_max: int = 256

    # Page geometry cache
    page_cache_ttl_s: float = 300.0
    page_cache_max: int = 256

    # Timestamp printed under each burned-in signature (local time)
    timestamp_format: str = "%Y-%m-%d %H:%M:%S"

    # Operators only: include exception type + traceback in error bodies
    debug_errors: bool = Field(
        default=False,
        description="Expose diagnostic detail in error responses (never enable for end users)",
    )
    log_level: str = "INFO"

    model_config = ConfigDict(
        # Always load .env from the same folder as this settings.py
        env_file=str(Path(__file__).resolve().parent / ".env"),
        extra="ignore",
    )

    def get_origins_list(self) -> List[str]:
        """Parse comma-separated origins into a list."""
        if not self.allowed_origins:
            return ["*"]
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    def get_content_types(self) -> List[str]:
        return [t.strip().lower() for t in self.allowed_content_types.split(",") if t.strip()]


_settings_instance = None

def get_settings() -> Settings:
    """Singleton pattern for settings."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
