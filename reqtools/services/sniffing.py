# reqtools/services/sniffing.py
"""
Content sniffing: bepaal het MIME-type uit de eerste bytes van een bestand.

Implements the WHATWG MIME sniffing table (https://mimesniff.spec.whatwg.org/)
for the subset browsers and HTTP servers commonly agree on. The client's
declared Content-Type plays no part in the result.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

SNIFF_LEN = 512
DEFAULT_TYPE = "application/octet-stream"

_WHITESPACE = b"\t\n\x0c\r "


class _Signature(Protocol):
    def match(self, data: bytes, first_non_ws: int) -> Optional[str]: ...


@dataclass(frozen=True)
class _Exact:
    sig: bytes
    ct: str

    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        return self.ct if data.startswith(self.sig) else None


@dataclass(frozen=True)
class _Masked:
    mask: bytes
    pat: bytes
    ct: str
    skip_ws: bool = False

    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        if self.skip_ws:
            data = data[first_non_ws:]
        if len(self.pat) != len(self.mask) or len(data) < len(self.pat):
            return None
        for b, m, p in zip(data, self.mask, self.pat):
            if b & m != p:
                return None
        return self.ct


@dataclass(frozen=True)
class _HTML:
    tag: bytes

    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        data = data[first_non_ws:]
        if len(data) < len(self.tag) + 1:
            return None
        for i, b in enumerate(self.tag):
            db = data[i]
            if ord("A") <= b <= ord("Z"):
                db &= 0xDF
            if b != db:
                return None
        # next byte must terminate the tag
        if data[len(self.tag)] not in b" >":
            return None
        return "text/html; charset=utf-8"


class _MP4:
    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        if len(data) < 12:
            return None
        box_size = int.from_bytes(data[:4], "big")
        if len(data) < box_size or box_size % 4 != 0:
            return None
        if data[4:8] != b"ftyp":
            return None
        for st in range(8, box_size, 4):
            if st == 12:
                # major brand version
                continue
            if data[st:st + 3] == b"mp4":
                return "video/mp4"
        return None


class _Text:
    def match(self, data: bytes, first_non_ws: int) -> Optional[str]:
        for b in data[first_non_ws:]:
            if b <= 0x08 or b == 0x0B or 0x0E <= b <= 0x1A or 0x1C <= b <= 0x1F:
                return None
        return "text/plain; charset=utf-8"


_HTML_TAGS = (
    b"<!DOCTYPE HTML", b"<HTML", b"<HEAD", b"<SCRIPT", b"<IFRAME", b"<H1",
    b"<DIV", b"<FONT", b"<TABLE", b"<A", b"<STYLE", b"<TITLE", b"<B",
    b"<BODY", b"<BR", b"<P", b"<!--",
)

_SIGNATURES: tuple[_Signature, ...] = (
    *(_HTML(t) for t in _HTML_TAGS),
    _Masked(b"\xff\xff\xff\xff\xff", b"<?xml", "text/xml; charset=utf-8", skip_ws=True),
    _Exact(b"%PDF-", "application/pdf"),
    _Exact(b"%!PS-Adobe-", "application/postscript"),

    # UTF BOMs
    _Masked(b"\xff\xff\x00\x00", b"\xfe\xff\x00\x00", "text/plain; charset=utf-16be"),
    _Masked(b"\xff\xff\x00\x00", b"\xff\xfe\x00\x00", "text/plain; charset=utf-16le"),
    _Masked(b"\xff\xff\xff\x00", b"\xef\xbb\xbf\x00", "text/plain; charset=utf-8"),

    # Images
    _Exact(b"\x00\x00\x01\x00", "image/x-icon"),
    _Exact(b"\x00\x00\x02\x00", "image/x-icon"),
    _Exact(b"BM", "image/bmp"),
    _Exact(b"GIF87a", "image/gif"),
    _Exact(b"GIF89a", "image/gif"),
    _Masked(
        b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff\xff\xff",
        b"RIFF\x00\x00\x00\x00WEBPVP",
        "image/webp",
    ),
    _Exact(b"\x89PNG\x0d\x0a\x1a\x0a", "image/png"),
    _Exact(b"\xff\xd8\xff", "image/jpeg"),

    # Audio / video
    _Masked(b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff", b"FORM\x00\x00\x00\x00AIFF", "audio/aiff"),
    _Masked(b"\xff\xff\xff", b"ID3", "audio/mpeg"),
    _Masked(b"\xff\xff\xff\xff\xff", b"OggS\x00", "application/ogg"),
    _Masked(b"\xff" * 8, b"MThd\x00\x00\x00\x06", "audio/midi"),
    _Masked(b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff", b"RIFF\x00\x00\x00\x00AVI ", "video/avi"),
    _Masked(b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff", b"RIFF\x00\x00\x00\x00WAVE", "audio/wave"),
    _MP4(),
    _Exact(b"\x1a\x45\xdf\xa3", "video/webm"),

    # Fonts
    _Masked(b"\x00" * 34 + b"\xff\xff", b"\x00" * 34 + b"LP", "application/vnd.ms-fontobject"),
    _Exact(b"\x00\x01\x00\x00", "font/ttf"),
    _Exact(b"OTTO", "font/otf"),
    _Exact(b"ttcf", "font/collection"),
    _Exact(b"wOFF", "font/woff"),
    _Exact(b"wOF2", "font/woff2"),

    # Archives
    _Exact(b"\x1f\x8b\x08", "application/x-gzip"),
    _Exact(b"PK\x03\x04", "application/zip"),
    _Exact(b"Rar!\x1a\x07\x00", "application/x-rar-compressed"),
    _Exact(b"Rar!\x1a\x07\x01\x00", "application/x-rar-compressed"),

    _Exact(b"\x00asm", "application/wasm"),

    _Text(),  # moet als laatste
)


def detect_content_type(data: bytes) -> str:
    """Return the sniffed MIME type of ``data``; never raises.

    Only the first 512 bytes are considered. Unknown binary content yields
    ``application/octet-stream``.
    """
    data = bytes(data[:SNIFF_LEN])

    first_non_ws = 0
    while first_non_ws < len(data) and data[first_non_ws] in _WHITESPACE:
        first_non_ws += 1

    for sig in _SIGNATURES:
        ct = sig.match(data, first_non_ws)
        if ct:
            return ct
    return DEFAULT_TYPE
