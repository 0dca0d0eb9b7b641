# reqtools/services/static_files.py
import os
from pathlib import Path

from starlette.responses import FileResponse, PlainTextResponse, Response

from reqtools.core.logging_config import get_logger
from reqtools.exceptions import InvalidFileName
from reqtools.services.storage_uploads import safe_file_name

logger = get_logger(__name__)


def download_static_file(directory: str | os.PathLike, file_name: str, display_name: str) -> Response:
    """
    Serve ``directory/file_name`` as an attachment named ``display_name``.

    404 for missing files, directories and names that try to leave
    ``directory``; 403 when the file cannot be opened for lack of permission.
    """
    try:
        path = Path(directory) / safe_file_name(file_name)
    except InvalidFileName:
        return PlainTextResponse("404 page not found", status_code=404)

    if not path.is_file():
        return PlainTextResponse("404 page not found", status_code=404)

    try:
        # open once so permission problems become a 403 instead of a 500 mid-stream
        with open(path, "rb"):
            pass
    except PermissionError:
        logger.warning("download_forbidden", path=str(path))
        return PlainTextResponse("Forbidden", status_code=403)
    except FileNotFoundError:
        return PlainTextResponse("404 page not found", status_code=404)

    return FileResponse(
        path,
        filename=display_name,
        content_disposition_type="attachment",
    )
