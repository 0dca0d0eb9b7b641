# reqtools/routers/echo.py
from typing import List

from fastapi import APIRouter, Request
from pydantic import BaseModel
from starlette.responses import Response

from reqtools.services.json_codec import read_json, write_json

router = APIRouter(tags=["json"])


class EchoPayload(BaseModel):
    message: str
    tags: List[str] = []


@router.post("/echo")
async def echo(request: Request) -> Response:
    """Strict JSON round trip: unknown fields and trailing data are rejected."""
    payload = await read_json(request, EchoPayload)
    return write_json(200, payload, headers={"X-Echo": "1"})
