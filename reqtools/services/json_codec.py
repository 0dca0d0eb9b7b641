# reqtools/services/json_codec.py
import dataclasses
import json
from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Type, TypeVar, Union

from pydantic import AliasChoices, AliasPath, PydanticUserError, RootModel, TypeAdapter, ValidationError
from pydantic_core import to_json
from starlette.requests import Request
from starlette.responses import Response

from reqtools.core.logging_config import get_logger
from reqtools.core.settings import settings
from reqtools.exceptions import (
    BodyTooLarge,
    EmptyBody,
    InvalidDecodeTarget,
    JSONDecodeFailure,
    JSONTypeMismatch,
    MalformedJSON,
    MultipleJSONValues,
    TruncatedJSON,
    UnknownField,
)
from reqtools.observability.metrics import json_decode_counter
from reqtools.schemas.json_payloads import JSONCodecConfiguration, JSONResponse
from reqtools.services.body_limits import check_content_length, read_limited

logger = get_logger(__name__)

T = TypeVar("T")

HeaderValues = Union[str, Sequence[str]]

_JSON_WS = " \t\n\r"


class _NonStandardConstant(ValueError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"invalid JSON literal {name}")


def _reject_constant(name: str) -> Any:
    # NaN, Infinity and -Infinity are not JSON
    raise _NonStandardConstant(name)


_decoder = json.JSONDecoder(parse_constant=_reject_constant)


# =========================
# Decode helpers
# =========================
@lru_cache(maxsize=256)
def _adapter_for(target: Any) -> TypeAdapter:
    try:
        return TypeAdapter(target)
    except (PydanticUserError, TypeError) as e:
        raise InvalidDecodeTarget(target, str(e)) from e


def _byte_offset(text: str, pos: int) -> int:
    return len(text[:pos].encode("utf-8"))


def _is_truncated(err: json.JSONDecodeError) -> bool:
    return err.pos >= len(err.doc.rstrip(_JSON_WS)) or err.msg.startswith("Unterminated string")


def _skip_ws(text: str, pos: int) -> int:
    while pos < len(text) and text[pos] in _JSON_WS:
        pos += 1
    return pos


def _constant_offset(text: str, start: int, name: str) -> int:
    """Position of the first ``name`` literal outside a string."""
    in_string = escaped = False
    for i in range(start, len(text)):
        c = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif c == "\\":
                escaped = True
            elif c == '"':
                in_string = False
        elif c == '"':
            in_string = True
        elif text.startswith(name, i):
            return i
    return start


def _value_offset(text: str, pos: int, loc: Sequence[Any]) -> int:
    """
    Follow a pydantic error location through already-validated JSON text and
    return where the deepest value that could be reached starts.
    """
    scan = _decoder.scan_once
    pos = _skip_ws(text, pos)
    for part in loc:
        opener = text[pos] if pos < len(text) else ""
        if opener not in ("{", "["):
            break
        closer = "}" if opener == "{" else "]"
        cur = _skip_ws(text, pos + 1)
        index = 0
        found = None
        while cur < len(text) and text[cur] != closer:
            if opener == "{":
                key, cur = scan(text, cur)
                cur = _skip_ws(text, _skip_ws(text, cur) + 1)  # ':'
                hit = key == str(part)
            else:
                hit = isinstance(part, int) and index == part
            if hit:
                found = cur
                break
            _, cur = scan(text, cur)
            cur = _skip_ws(text, cur)
            if text[cur] == ",":
                cur = _skip_ws(text, cur + 1)
            index += 1
        if found is None:
            # union tags and other non-path entries end the walk
            break
        pos = found
    return pos


def _is_type_error(error_type: str) -> bool:
    # pydantic-core names type failures "<kind>_type" / "<kind>_parsing"
    return (
        error_type.endswith("_type")
        or error_type.endswith("_parsing")
        or error_type == "int_from_float"
    )


def _classify_validation_error(err: ValidationError, text: str, start: int) -> Exception:
    first = err.errors()[0]
    loc_parts = first.get("loc", ())
    loc = ".".join(str(p) for p in loc_parts) or None
    if first["type"] == "extra_forbidden" and loc:
        return UnknownField(loc)
    if _is_type_error(first["type"]):
        offset = _byte_offset(text, _value_offset(text, start, loc_parts))
        return JSONTypeMismatch(field=loc, offset=offset)
    # missing fields, constraint violations ... the caller gets pydantic's error
    return err


def _alias_keys(name: str, info: Any) -> List[Tuple[str, bool]]:
    """(payload key, whether the key holds the field value itself) pairs for one field."""
    va = info.validation_alias
    if va is None:
        return [(info.alias or name, True)]
    choices = va.choices if isinstance(va, AliasChoices) else [va]
    keys = []
    for choice in choices:
        if isinstance(choice, AliasPath):
            keys.append((str(choice.path[0]), len(choice.path) == 1))
        else:
            keys.append((choice, True))
    return keys


def _accepted_keys(cls: type) -> Optional[Dict[str, Optional[str]]]:
    """
    Payload keys ``cls`` reads, mapped to the attribute they end up in.

    None when the type takes arbitrary keys (or is not a record type). Keys
    that only lead into a nested AliasPath map to None and are not walked.
    """
    fields = getattr(cls, "__pydantic_fields__", None) or getattr(cls, "model_fields", None)
    if fields is None:
        if dataclasses.is_dataclass(cls):
            return {f.name: f.name for f in dataclasses.fields(cls)}
        return None

    config = getattr(cls, "model_config", None) or getattr(cls, "__pydantic_config__", None) or {}
    if config.get("extra") == "allow":
        return None
    by_alias = config.get("validate_by_alias", True)
    by_name = config.get("populate_by_name") or config.get("validate_by_name") or not by_alias

    keys: Dict[str, Optional[str]] = {}
    for name, info in fields.items():
        if by_alias:
            for key, direct in _alias_keys(name, info):
                keys[key] = name if direct else None
        if by_name:
            keys[name] = name
    return keys


def _find_unknown(raw: Any, value: Any, path: List[str]) -> Optional[str]:
    """First payload key that has no destination in the validated value."""
    if isinstance(value, RootModel):
        return _find_unknown(raw, value.root, path)

    if isinstance(raw, dict):
        keys = _accepted_keys(type(value))
        if keys is not None:
            for key, item in raw.items():
                if key not in keys:
                    return ".".join(path + [key])
                attr = keys[key]
                if attr is not None:
                    found = _find_unknown(item, getattr(value, attr, None), path + [key])
                    if found:
                        return found
        elif isinstance(value, dict):
            # TypedDicts and plain mappings drop what they do not declare
            known = {str(k): v for k, v in value.items()}
            for key, item in raw.items():
                if key not in known:
                    return ".".join(path + [key])
                found = _find_unknown(item, known[key], path + [key])
                if found:
                    return found
    elif isinstance(raw, list) and isinstance(value, (list, tuple)):
        for i, (r, v) in enumerate(zip(raw, value)):
            found = _find_unknown(r, v, path + [str(i)])
            if found:
                return found
    return None


def decode_json(body: bytes, target: Type[T], *, allow_unknown_fields: bool = False) -> T:
    """
    Decode exactly one JSON value from ``body`` into ``target``.

    ``target`` is anything pydantic can validate into (BaseModel subclasses,
    dataclasses, TypedDicts, builtins). Validation runs in strict JSON mode,
    so "1" is not accepted for an int field. Raises a JSONDecodeFailure
    subclass for the categories in reqtools.exceptions; any other pydantic
    ValidationError is raised unchanged.
    """
    adapter = _adapter_for(target)

    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise MalformedJSON(e.start) from e

    start = len(text) - len(text.lstrip(_JSON_WS))
    if start == len(text):
        raise EmptyBody()

    try:
        raw, end = _decoder.raw_decode(text, start)
    except _NonStandardConstant as e:
        raise MalformedJSON(_byte_offset(text, _constant_offset(text, start, e.name))) from e
    except json.JSONDecodeError as e:
        if _is_truncated(e):
            raise TruncatedJSON() from e
        raise MalformedJSON(_byte_offset(text, e.pos)) from e

    try:
        value = adapter.validate_json(text[start:end], strict=True)
    except ValidationError as e:
        classified = _classify_validation_error(e, text, start)
        if classified is e:
            raise
        raise classified from e

    if not allow_unknown_fields:
        unknown = _find_unknown(raw, value, [])
        if unknown:
            raise UnknownField(unknown)

    if text[end:].strip(_JSON_WS):
        raise MultipleJSONValues()

    return value


# =========================
# Request / response
# =========================
async def read_json(
    request: Request,
    target: Type[T],
    *,
    config: Optional[JSONCodecConfiguration] = None,
) -> T:
    """Read the request body (at most ``max_body_size`` bytes) and decode it into ``target``."""
    config = config or settings.json_config()
    limit = config.max_body_size
    try:
        check_content_length(request.headers, limit, BodyTooLarge)
        body = await read_limited(request.stream(), limit, BodyTooLarge)
        value = decode_json(body, target, allow_unknown_fields=config.allow_unknown_fields)
    except (JSONDecodeFailure, ValidationError) as e:
        json_decode_counter.labels(result=type(e).__name__).inc()
        logger.info("json_decode_failed", error=type(e).__name__, detail=str(e))
        raise
    json_decode_counter.labels(result="ok").inc()
    return value


def write_json(
    status: int,
    data: Any,
    headers: Optional[Mapping[str, HeaderValues]] = None,
) -> Response:
    """
    Serialise ``data`` and build the response.

    Extra headers replace any existing header of the same name; the
    Content-Type is always application/json regardless of ``headers``.
    Serialisation errors propagate unchanged.
    """
    out = to_json(data)

    response = Response(content=out, status_code=status)
    for key, value in (headers or {}).items():
        if key.lower() in response.headers:
            del response.headers[key]
        if isinstance(value, str):
            response.headers[key] = value
        else:
            for item in value:
                response.headers.append(key, item)

    response.headers["content-type"] = "application/json"
    return response


def error_json(exc: BaseException, status: int = 400) -> Response:
    payload = JSONResponse(error=True, message=str(exc))
    return write_json(status, payload.model_dump(exclude_none=True))


class JSONCodec:
    """JSON read/write bound to one immutable configuration."""

    def __init__(self, config: Optional[JSONCodecConfiguration] = None):
        self._config = config or settings.json_config()

    @property
    def config(self) -> JSONCodecConfiguration:
        return self._config

    async def read(self, request: Request, target: Type[T]) -> T:
        return await read_json(request, target, config=self._config)

    def write(self, status: int, data: Any, headers: Optional[Mapping[str, HeaderValues]] = None) -> Response:
        return write_json(status, data, headers)

    def error(self, exc: BaseException, status: int = 400) -> Response:
        return error_json(exc, status)
