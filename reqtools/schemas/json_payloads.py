# reqtools/schemas/json_payloads.py
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

DEFAULT_MAX_BODY_SIZE = 1024 * 1024  # 1 MiB


class JSONCodecConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_body_size: int = DEFAULT_MAX_BODY_SIZE
    allow_unknown_fields: bool = False

    @field_validator("max_body_size", mode="before")
    @classmethod
    def default_when_unset(cls, v):
        if not v or int(v) < 0:
            return DEFAULT_MAX_BODY_SIZE
        return v


class JSONResponse(BaseModel):
    """Envelope used for error and status messages."""

    error: bool = False
    message: str = ""
    data: Any = None
