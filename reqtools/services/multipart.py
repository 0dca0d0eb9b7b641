# reqtools/services/multipart.py
from starlette.datastructures import FormData, UploadFile
from starlette.formparsers import MultiPartParser
from starlette.requests import Request

from reqtools.exceptions import NotMultipartRequest, RequestBodyTooLarge
from reqtools.services.body_limits import check_content_length, limited_stream


def _is_multipart(content_type: str) -> bool:
    media_type, _, params = content_type.partition(";")
    return media_type.strip().lower() == "multipart/form-data" and "boundary=" in params.lower()


async def parse_form(request: Request, max_size: int) -> FormData:
    """
    Parse a multipart/form-data body, never reading more than ``max_size`` bytes.

    File parts come back as ``starlette.datastructures.UploadFile`` objects
    backed by spooled temporary files; the caller owns closing them
    (``FormData.close()``).
    """
    content_type = request.headers.get("content-type", "")
    if not _is_multipart(content_type):
        raise NotMultipartRequest(content_type)

    check_content_length(request.headers, max_size, RequestBodyTooLarge)

    parser = MultiPartParser(
        request.headers,
        limited_stream(request.stream(), max_size, RequestBodyTooLarge),
    )
    try:
        return await parser.parse()
    except BaseException:
        # older starlette releases only close their spooled files on MultiPartException
        for f in getattr(parser, "_files_to_close_on_error", ()):
            f.close()
        for _, item in getattr(parser, "items", ()):
            if isinstance(item, UploadFile):
                item.file.close()
        raise
