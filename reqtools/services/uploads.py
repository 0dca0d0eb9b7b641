# reqtools/services/uploads.py
import os
import uuid
from pathlib import Path
from typing import List, Optional, Union

from starlette.datastructures import UploadFile
from starlette.requests import Request

from reqtools.core.logging_config import get_logger
from reqtools.core.settings import settings
from reqtools.exceptions import FileTypeNotAllowed, NoFileUploaded, UploadError
from reqtools.observability.metrics import upload_counter, upload_size_hist
from reqtools.schemas.uploads import UploadConfiguration, UploadedFile
from reqtools.services.multipart import parse_form
from reqtools.services.sniffing import detect_content_type
from reqtools.services.storage_uploads import destination_name

logger = get_logger(__name__)

FILE_FIELD = "file"
CHUNK_SIZE = 1_048_576  # 1 MiB
TMP_PREFIX = ".tmp-"

PathLike = Union[str, os.PathLike]


def _is_file(value) -> bool:
    # parts with an empty filename are plain form values, not uploads
    return isinstance(value, UploadFile) and bool(value.filename)


def _safe_unlink(path: Path) -> None:
    try:
        os.remove(path)
    except OSError:
        pass


async def _stream_to_disk(upload: UploadFile, upload_dir: Path, new_name: str) -> int:
    """
    Copy the upload into ``upload_dir/new_name`` and return the bytes written.

    Data goes to a temp file in the same directory first and is moved into
    place with os.replace(), so the destination only ever holds a complete file.
    """
    tmp_path = upload_dir / f"{TMP_PREFIX}{uuid.uuid4().hex}"
    written = 0
    try:
        with open(tmp_path, "xb") as out:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                out.write(chunk)
                written += len(chunk)
        os.replace(tmp_path, upload_dir / new_name)
    except BaseException:
        _safe_unlink(tmp_path)
        raise
    return written


async def _check_type(upload: UploadFile, config: UploadConfiguration) -> None:
    # sniff the bytes, never the client's Content-Type header
    content = await upload.read()
    await upload.seek(0)
    detected = detect_content_type(content)
    if not config.is_allowed_type(detected):
        raise FileTypeNotAllowed(detected)


async def process_uploaded_file(
    upload: UploadFile,
    upload_dir: PathLike,
    rename: bool,
    config: UploadConfiguration,
) -> UploadedFile:
    """Validate and persist a single file part. The part is always closed."""
    original = upload.filename or ""
    try:
        if config.allowed_types:
            await _check_type(upload, config)
        new_name = destination_name(original, rename)
        size = await _stream_to_disk(upload, Path(upload_dir), new_name)
    except UploadError as e:
        upload_counter.labels(result="rejected").inc()
        logger.warning("upload_rejected", original_file_name=original, reason=str(e))
        raise
    except OSError as e:
        upload_counter.labels(result="error").inc()
        logger.error("upload_io_failed", original_file_name=original, error=repr(e))
        raise
    finally:
        await upload.close()

    upload_counter.labels(result="stored").inc()
    upload_size_hist.observe(size)
    logger.info(
        "upload_stored",
        original_file_name=original,
        new_file_name=new_name,
        file_size=size,
    )
    return UploadedFile(original_file_name=original, new_file_name=new_name, file_size=size)


async def upload_file(
    request: Request,
    upload_dir: PathLike,
    rename: bool = True,
    *,
    config: Optional[UploadConfiguration] = None,
) -> UploadedFile:
    """
    Store the first file sent under the form field ``file``.

    Additional files under the same field are ignored. Raises NoFileUploaded
    when the field is absent or carries no file.
    """
    config = config or settings.upload_config()
    form = await parse_form(request, config.max_file_size)
    try:
        files = [f for f in form.getlist(FILE_FIELD) if _is_file(f)]
        if not files:
            logger.info("upload_missing", field=FILE_FIELD)
            raise NoFileUploaded()
        return await process_uploaded_file(files[0], upload_dir, rename, config)
    finally:
        await form.close()


async def upload_files(
    request: Request,
    upload_dir: PathLike,
    rename: bool = True,
    *,
    config: Optional[UploadConfiguration] = None,
) -> List[UploadedFile]:
    """
    Store every file in the form, in the order the parts were sent.

    Stops at the first failure. Files stored earlier in the same call are
    left on disk; their records are not returned.
    """
    config = config or settings.upload_config()
    form = await parse_form(request, config.max_file_size)
    uploaded: List[UploadedFile] = []
    try:
        for field, value in form.multi_items():
            if not _is_file(value):
                continue
            try:
                uploaded.append(await process_uploaded_file(value, upload_dir, rename, config))
            except (UploadError, OSError):
                if uploaded:
                    logger.warning(
                        "upload_batch_aborted",
                        field=field,
                        already_stored=[u.new_file_name for u in uploaded],
                    )
                raise
    finally:
        await form.close()
    return uploaded


class UploadPipeline:
    """Upload entry points bound to one immutable configuration."""

    def __init__(self, config: Optional[UploadConfiguration] = None):
        self._config = config or settings.upload_config()

    @property
    def config(self) -> UploadConfiguration:
        return self._config

    async def upload_file(self, request: Request, upload_dir: PathLike, rename: bool = True) -> UploadedFile:
        return await upload_file(request, upload_dir, rename, config=self._config)

    async def upload_files(self, request: Request, upload_dir: PathLike, rename: bool = True) -> List[UploadedFile]:
        return await upload_files(request, upload_dir, rename, config=self._config)
