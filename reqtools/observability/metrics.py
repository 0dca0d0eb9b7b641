# reqtools/observability/metrics.py
from fastapi import APIRouter
from starlette.responses import Response

from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST

router = APIRouter(tags=["observability"])

upload_counter = Counter(
    "reqtools_upload_files_total",
    "Number of processed upload files",
    ["result"],  # stored|rejected|error
)

upload_size_hist = Histogram(
    "reqtools_upload_size_bytes",
    "Sizes of stored uploads (bytes written)",
    buckets=(1e3, 1e4, 1e5, 3e5, 1e6, 3e6, 1e7, 3e7, 1e8),
)

json_decode_counter = Counter(
    "reqtools_json_decode_total",
    "JSON request bodies by decode outcome",
    ["result"],  # ok|<error class name>
)


@router.get("/metrics", include_in_schema=True)
def metrics() -> Response:
    # Prometheus expects text/plain; version=0.0.4
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
