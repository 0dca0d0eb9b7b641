"""Exception types raised by the upload pipeline and the JSON codec.

They carry structured context (limits, offsets, field names, detected types)
so routers or global exception handlers can build precise client messages
without inspecting message text.
"""

from __future__ import annotations

from typing import Optional


# =========================
# Uploads
# =========================
class UploadError(Exception):
    """Base class for upload validation failures."""


class NoFileUploaded(UploadError):
    def __init__(self) -> None:
        super().__init__("no file uploaded")


class RequestBodyTooLarge(UploadError):
    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"request body too large (limit {limit} bytes)")


class FileTypeNotAllowed(UploadError):
    def __init__(self, detected_type: str) -> None:
        self.detected_type = detected_type
        super().__init__(f"file type {detected_type} not allowed")


class InvalidFileName(UploadError):
    def __init__(self, file_name: str) -> None:
        self.file_name = file_name
        super().__init__(f"invalid file name {file_name!r}")


class NotMultipartRequest(UploadError):
    def __init__(self, content_type: str) -> None:
        self.content_type = content_type
        super().__init__(f"request Content-Type isn't multipart/form-data: {content_type or '(none)'}")


# =========================
# JSON
# =========================
class JSONDecodeFailure(ValueError):
    """Base class for request bodies that could not be decoded."""


class MalformedJSON(JSONDecodeFailure):
    def __init__(self, offset: int) -> None:
        self.offset = offset
        super().__init__(f"body contains badly-formed JSON (at character {offset})")


class TruncatedJSON(JSONDecodeFailure):
    def __init__(self) -> None:
        super().__init__("body contains badly-formed JSON")


class JSONTypeMismatch(JSONDecodeFailure):
    def __init__(self, field: Optional[str] = None, offset: Optional[int] = None) -> None:
        self.field = field
        self.offset = offset
        if field:
            msg = f"body contains incorrect JSON type for field {field!r}"
        else:
            msg = f"body contains incorrect JSON type (at character {offset or 0})"
        super().__init__(msg)


class EmptyBody(JSONDecodeFailure):
    def __init__(self) -> None:
        super().__init__("body must not be empty")


class UnknownField(JSONDecodeFailure):
    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"body contains unknown field {field!r}")


class BodyTooLarge(JSONDecodeFailure):
    def __init__(self, limit: int) -> None:
        self.limit = limit
        super().__init__(f"body must not be larger than {limit} bytes")


class MultipleJSONValues(JSONDecodeFailure):
    def __init__(self) -> None:
        super().__init__("body must only contain a single JSON value")


class InvalidDecodeTarget(TypeError):
    """Raised when the decode target is not a type pydantic can validate into."""

    def __init__(self, target: object, reason: str) -> None:
        self.target = target
        super().__init__(f"internal error: cannot decode into {target!r}: {reason}")
