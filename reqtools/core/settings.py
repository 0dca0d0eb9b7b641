# reqtools/core/settings.py
from pydantic_settings import BaseSettings, SettingsConfigDict

from reqtools.schemas.json_payloads import JSONCodecConfiguration
from reqtools.schemas.uploads import UploadConfiguration


class Settings(BaseSettings):
    APP_ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    # --- Uploads ---
    UPLOAD_DIR: str = "./uploads"
    UPLOAD_MAX_FILE_SIZE: int = 10 * 1024 * 1024
    UPLOAD_ALLOWED_TYPES: list[str] = []
    UPLOAD_RENAME: bool = True

    # --- JSON ---
    JSON_MAX_BODY_SIZE: int = 1024 * 1024
    JSON_ALLOW_UNKNOWN_FIELDS: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def upload_config(self) -> UploadConfiguration:
        return UploadConfiguration(
            max_file_size=self.UPLOAD_MAX_FILE_SIZE,
            allowed_types=frozenset(self.UPLOAD_ALLOWED_TYPES),
        )

    def json_config(self) -> JSONCodecConfiguration:
        return JSONCodecConfiguration(
            max_body_size=self.JSON_MAX_BODY_SIZE,
            allow_unknown_fields=self.JSON_ALLOW_UNKNOWN_FIELDS,
        )


settings = Settings()  # leest .env
