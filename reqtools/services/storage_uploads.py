# reqtools/services/storage_uploads.py
import os
import re
import secrets
from pathlib import Path

from reqtools.exceptions import InvalidFileName

RANDOM_STRING_SOURCE = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_+"
RENAMED_LENGTH = 25

_SLUG_RE = re.compile(r"[^a-z0-9]+")


def random_string(n: int) -> str:
    """Random string of length n over a-z, A-Z, 0-9, '_' and '+'."""
    return "".join(secrets.choice(RANDOM_STRING_SOURCE) for _ in range(n))


def slugify(value: str) -> str:
    if value == "":
        raise ValueError("empty string not permitted")
    slug = _SLUG_RE.sub("-", value.lower()).strip("-")
    if not slug:
        raise ValueError("after removing characters, slug is zero length")
    return slug


def ensure_dir(path: str | os.PathLike, mode: int = 0o755) -> None:
    """Maak de map (en ouders) aan als die nog niet bestaat."""
    Path(path).mkdir(mode=mode, parents=True, exist_ok=True)


def safe_file_name(name: str) -> str:
    """
    Strip directory components from a client-declared file name.

    Both separators are treated as path separators regardless of the host OS.
    Names that are empty, '.', '..' or contain NUL bytes are rejected.
    """
    base = (name or "").replace("\\", "/").rsplit("/", 1)[-1].strip()
    if base in ("", ".", "..") or "\x00" in base:
        raise InvalidFileName(name)
    return base


def destination_name(original_filename: str, rename: bool) -> str:
    base = safe_file_name(original_filename)
    if not rename:
        return base
    _, ext = os.path.splitext(base)
    return f"{random_string(RENAMED_LENGTH)}{ext}"
