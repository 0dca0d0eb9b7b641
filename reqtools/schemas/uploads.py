# reqtools/schemas/uploads.py
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MiB


class UploadConfiguration(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    allowed_types: frozenset[str] = Field(default_factory=frozenset)

    @field_validator("max_file_size", mode="before")
    @classmethod
    def default_when_unset(cls, v):
        # 0 / None means "not configured"
        if not v:
            return DEFAULT_MAX_FILE_SIZE
        if int(v) < 0:
            raise ValueError("max_file_size must be positive")
        return v

    @field_validator("allowed_types", mode="before")
    @classmethod
    def strip_types(cls, v):
        if v is None:
            return frozenset()
        return frozenset(t.strip() for t in v if t and t.strip())

    def is_allowed_type(self, content_type: str) -> bool:
        wanted = content_type.casefold()
        return any(t.casefold() == wanted for t in self.allowed_types)


class UploadedFile(BaseModel):
    original_file_name: str
    new_file_name: str
    file_size: int
