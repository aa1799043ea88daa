"""
Application configuration settings.
Loads from .env file first (overrides shell env for local dev), then pydantic reads from environment.
Production: set env vars in the platform (Docker, K8s, etc.); .env is optional.

Settings and constants for resume storage, parsing and caching live here.
"""
from pathlib import Path

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env path: roman/.env (absolute path, works regardless of cwd)
_BASE_DIR = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = (_BASE_DIR / ".env").resolve()

# Load .env into environment BEFORE pydantic reads. override=True ensures .env
# values override any shell env (e.g. a stale OPENAI_API_KEY from elsewhere).
# When .env doesn't exist (prod), this is a no-op; platform env vars are used.
if _ENV_FILE.exists():
    load_dotenv(_ENV_FILE, override=True)


class Settings(BaseSettings):
    """Application settings. Source: env vars (after dotenv load)."""

    # App
    app_name: str = "Roman"
    app_version: str = "1.0.0"
    port: int = 8001

    # Database
    database_url: str = "sqlite:///./roman.db"

    # Auth (token verification only; issuance lives in the auth service)
    secret_key: str = "your-secret-key-change-in-production"
    algorithm: str = "HS256"

    # Resumes
    resume_limit_per_user: int = 3
    resume_cache_ttl_hours: int = 72

    # Blob storage
    upload_dir: str = "uploads/resume_blobs"
    blob_key_prefix: str = "resume-blobs"

    # Redis
    redis_url: str = ""

    # HTTP / network
    http_request_timeout: int = 30
    remote_fetch_user_agent: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

    # AWS S3
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_region: str = "ap-southeast-1"
    aws_bucket_name: str = "roman-resume-blobs"

    # OpenAI
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    ai_request_timeout: int = 30
    ai_max_retries: int = 2
    ai_max_tokens: int = 4000

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE) if _ENV_FILE.exists() else ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def resume_cache_ttl_seconds(self) -> int:
        return self.resume_cache_ttl_hours * 60 * 60


settings = Settings()


# --- Constants (non-env, business config) ---

# Redis key prefix for parsed resume data: resume:parsed:<user_id>:<resume_id>
RESUME_CACHE_KEY_PREFIX: str = "resume:parsed"

# AI credentials shorter than this are rejected before any request is made
MIN_API_KEY_LENGTH: int = 20

# Detected file type -> stored blob extension / content type
FILE_EXTENSIONS: dict[str, str] = {
    "pdf": "pdf",
    "docx": "docx",
    "doc": "doc",
    "image": "png",
}
CONTENT_TYPES: dict[str, str] = {
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "doc": "application/msword",
    "image": "image/png",
}

# Upload endpoint
ALLOWED_UPLOAD_EXTENSIONS: frozenset[str] = frozenset({".pdf", ".doc", ".docx", ".png", ".jpg", ".jpeg"})
MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024
