import pytest

from reqtools.services.sniffing import SNIFF_LEN, detect_content_type

from conftest import PNG_BYTES


@pytest.mark.parametrize(
    "data, expected",
    [
        (b"", "text/plain; charset=utf-8"),
        (b"hello world\n", "text/plain; charset=utf-8"),
        ("olá mundo".encode(), "text/plain; charset=utf-8"),
        (PNG_BYTES, "image/png"),
        (b"\xff\xd8\xff\xe0\x00\x10JFIF\x00", "image/jpeg"),
        (b"GIF89a\x01\x00\x01\x00", "image/gif"),
        (b"%PDF-1.7\n%\xe2\xe3\xcf\xd3", "application/pdf"),
        (b"PK\x03\x04\x14\x00\x00\x00", "application/zip"),
        (b"\x1f\x8b\x08\x00\x00\x00\x00\x00", "application/x-gzip"),
        (b"RIFF\x24\x00\x00\x00WEBPVP8 ", "image/webp"),
        (b"RIFF\x24\x00\x00\x00WAVEfmt ", "audio/wave"),
        (b"ID3\x03\x00\x00\x00", "audio/mpeg"),
        (b"\x00asm\x01\x00\x00\x00", "application/wasm"),
        (b"\x00\x01\x02\x03\x04\x05", "application/octet-stream"),
    ],
)
def test_signatures(data, expected):
    assert detect_content_type(data) == expected


@pytest.mark.parametrize(
    "data",
    [
        b"<!DOCTYPE html><html></html>",
        b"  \n<html>",
        b"<HTML><body>x</body></HTML>",
        b"<p>hi</p>",
        b"<!-- comment -->",
    ],
)
def test_html(data):
    assert detect_content_type(data) == "text/html; charset=utf-8"


def test_html_tag_needs_terminator():
    # "<pre" is not "<p"
    assert detect_content_type(b"<pre>code</pre>") == "text/plain; charset=utf-8"


def test_xml_after_whitespace():
    assert detect_content_type(b'\n  <?xml version="1.0"?><a/>') == "text/xml; charset=utf-8"


def test_mp4():
    data = b"\x00\x00\x00\x18ftypmp42\x00\x00\x00\x00mp42isom"
    assert detect_content_type(data) == "video/mp4"


def test_only_first_bytes_are_considered():
    # binary byte beyond the sniff window does not spoil the text verdict
    data = b"a" * SNIFF_LEN + b"\x00"
    assert detect_content_type(data) == "text/plain; charset=utf-8"
    assert detect_content_type(b"a" * 10 + b"\x00") == "application/octet-stream"


def test_accepts_bytearray_and_memoryview():
    assert detect_content_type(bytearray(PNG_BYTES)) == "image/png"
    assert detect_content_type(memoryview(PNG_BYTES)) == "image/png"
