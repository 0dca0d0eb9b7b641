# reqtools/routers/files.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from starlette.responses import Response

from reqtools.core.settings import settings
from reqtools.schemas.uploads import UploadedFile
from reqtools.services.static_files import download_static_file
from reqtools.services.uploads import UploadPipeline

router = APIRouter(prefix="/files", tags=["files"])


def get_upload_pipeline() -> UploadPipeline:
    return UploadPipeline(settings.upload_config())


@router.post("/upload", response_model=UploadedFile, status_code=201)
async def upload_single(
    request: Request,
    rename: Optional[bool] = Query(default=None),
    pipeline: UploadPipeline = Depends(get_upload_pipeline),
):
    """
    Multipart upload, veld 'file'. Alleen het eerste bestand wordt opgeslagen.
    """
    if rename is None:
        rename = settings.UPLOAD_RENAME
    return await pipeline.upload_file(request, settings.UPLOAD_DIR, rename)


@router.post("/upload-many", response_model=List[UploadedFile], status_code=201)
async def upload_many(
    request: Request,
    rename: Optional[bool] = Query(default=None),
    pipeline: UploadPipeline = Depends(get_upload_pipeline),
):
    if rename is None:
        rename = settings.UPLOAD_RENAME
    return await pipeline.upload_files(request, settings.UPLOAD_DIR, rename)


@router.get("/download/{file_name}")
def download(file_name: str, display_name: str | None = Query(default=None)) -> Response:
    return download_static_file(settings.UPLOAD_DIR, file_name, display_name or file_name)
