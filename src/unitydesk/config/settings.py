"""Application settings loaded from environment."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from unitydesk.errors import ConfigurationError


class Settings(BaseSettings):
    """Strongly typed settings for the web app, pipeline and CLI."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    pghost: Optional[str] = Field(default=None, alias="PGHOST")
    pgport: int = Field(default=5432, alias="PGPORT")
    pguser: Optional[str] = Field(default=None, alias="PGUSER")
    pgpassword: Optional[str] = Field(default=None, alias="PGPASSWORD")
    pgdatabase: Optional[str] = Field(default=None, alias="PGDATABASE")

    # Supabase
    supabase_url: Optional[str] = Field(default=None, alias="SUPABASE_URL")
    supabase_service_role_key: Optional[str] = Field(
        default=None, alias="SUPABASE_SERVICE_ROLE_KEY"
    )
    supabase_anon_key: Optional[str] = Field(default=None, alias="SUPABASE_ANON_KEY")
    image_bucket: str = Field(default="image-complaints", alias="SUPABASE_IMAGE_BUCKET")
    voice_bucket: str = Field(default="voice-complaints", alias="SUPABASE_VOICE_BUCKET")
    supabase_timeout_seconds: int = Field(default=30, alias="SUPABASE_TIMEOUT_SECONDS")

    # Azure OpenAI
    azure_openai_endpoint: Optional[str] = Field(default=None, alias="AZURE_OPENAI_ENDPOINT")
    azure_openai_api_key: Optional[str] = Field(default=None, alias="AZURE_OPENAI_API_KEY")
    azure_openai_deployment: Optional[str] = Field(
        default=None, alias="AZURE_OPENAI_DEPLOYMENT_NAME"
    )
    azure_openai_api_version: str = Field(
        default="2024-06-01", alias="AZURE_OPENAI_API_VERSION"
    )
    llm_timeout_seconds: int = Field(default=60, alias="LLM_TIMEOUT_SECONDS")
    prompt_version: str = Field(default="v001", alias="PROMPT_VERSION")

    # Azure Speech
    azure_speech_key: Optional[str] = Field(default=None, alias="AZURE_SPEECH_KEY")
    azure_speech_region: Optional[str] = Field(default=None, alias="AZURE_SPEECH_REGION")
    speech_language: str = Field(default="en-IN", alias="AZURE_SPEECH_LANGUAGE")

    # Intake limits
    max_images_per_request: int = Field(default=5, alias="MAX_IMAGES_PER_REQUEST")
    max_upload_mb: int = Field(default=10, alias="MAX_UPLOAD_MB")
    min_text_chars: int = Field(default=10, alias="MIN_TEXT_CHARS")
    validate_image_rate_limit: str = Field(
        default="10/60 seconds", alias="VALIDATE_IMAGE_RATE_LIMIT"
    )

    # Runtime
    app_url: str = Field(default="http://localhost:3000", alias="APP_URL")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    run_env: str = Field(default="local", alias="RUN_ENV")

    def get_database_url(self) -> str:
        """Return a usable database URL or raise."""
        if self.database_url:
            return self.database_url

        if all([self.pghost, self.pguser, self.pgpassword, self.pgdatabase]):
            return (
                "postgresql://"
                f"{self.pguser}:{self.pgpassword}@{self.pghost}:{self.pgport}/"
                f"{self.pgdatabase}"
            )

        raise ValueError("DATABASE_URL or PG* env vars must be set")

    def has_database(self) -> bool:
        return bool(
            self.database_url
            or all([self.pghost, self.pguser, self.pgpassword, self.pgdatabase])
        )

    def has_speech(self) -> bool:
        return bool(self.azure_speech_key and self.azure_speech_region)

    def has_storage(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)

    def has_supabase_auth(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)

    def missing_ai_settings(self) -> list[str]:
        """Names of the completion-service variables that are not set."""
        missing: list[str] = []
        if not self.azure_openai_endpoint:
            missing.append("AZURE_OPENAI_ENDPOINT")
        if not self.azure_openai_api_key:
            missing.append("AZURE_OPENAI_API_KEY")
        if not self.azure_openai_deployment:
            missing.append("AZURE_OPENAI_DEPLOYMENT_NAME")
        return missing

    def require_ai(self) -> None:
        """Fail fast when the completion service is not configured."""
        missing = self.missing_ai_settings()
        if missing:
            raise ConfigurationError(
                "Azure OpenAI configuration incomplete, missing: " + ", ".join(missing)
            )

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024
