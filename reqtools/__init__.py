"""Request-handling primitives: bounded multipart uploads and a strict JSON codec."""

from reqtools.schemas.json_payloads import JSONCodecConfiguration, JSONResponse
from reqtools.schemas.uploads import UploadConfiguration, UploadedFile
from reqtools.services.json_codec import JSONCodec, error_json, read_json, write_json
from reqtools.services.static_files import download_static_file
from reqtools.services.storage_uploads import ensure_dir, random_string, slugify
from reqtools.services.uploads import UploadPipeline, upload_file, upload_files

__all__ = [
    "JSONCodec",
    "JSONCodecConfiguration",
    "JSONResponse",
    "UploadConfiguration",
    "UploadPipeline",
    "UploadedFile",
    "download_static_file",
    "ensure_dir",
    "error_json",
    "random_string",
    "read_json",
    "slugify",
    "upload_file",
    "upload_files",
    "write_json",
]
