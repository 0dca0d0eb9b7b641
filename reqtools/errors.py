# reqtools/errors.py
from typing import Any, Dict, Optional, Tuple

from reqtools.exceptions import (
    BodyTooLarge,
    EmptyBody,
    FileTypeNotAllowed,
    InvalidDecodeTarget,
    InvalidFileName,
    JSONDecodeFailure,
    JSONTypeMismatch,
    MalformedJSON,
    NoFileUploaded,
    NotMultipartRequest,
    RequestBodyTooLarge,
    UnknownField,
    UploadError,
)


def map_toolkit_error(e: Exception) -> Tuple[int, Dict[str, Any]]:
    """Map an upload/JSON failure to an HTTP status and a JSON error body."""
    status = 400
    context: Dict[str, Any] = {}
    hint: Optional[str] = None

    if isinstance(e, (RequestBodyTooLarge, BodyTooLarge)):
        status = 413
        context["limit"] = e.limit
    elif isinstance(e, FileTypeNotAllowed):
        status = 415
        context["detected_type"] = e.detected_type
    elif isinstance(e, NotMultipartRequest):
        status = 415
        hint = "Send the file as multipart/form-data."
    elif isinstance(e, NoFileUploaded):
        hint = "Expected a file in the form field 'file'."
    elif isinstance(e, InvalidFileName):
        context["file_name"] = e.file_name
    elif isinstance(e, MalformedJSON):
        context["offset"] = e.offset
    elif isinstance(e, JSONTypeMismatch):
        context["field"] = e.field
        context["offset"] = e.offset
    elif isinstance(e, UnknownField):
        context["field"] = e.field
    elif isinstance(e, EmptyBody):
        hint = "Send a JSON document in the request body."
    elif isinstance(e, InvalidDecodeTarget):
        status = 500
    elif isinstance(e, OSError):
        # disk problems are ours, not the client's
        status = 500

    body = {
        "error": True,
        "message": str(e) if status < 500 else "internal error",
        "type": type(e).__name__,
        "hint": hint,
        **context,
    }
    return status, body


TOOLKIT_ERRORS = (UploadError, JSONDecodeFailure, InvalidDecodeTarget)
