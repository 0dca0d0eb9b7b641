import os
from tempfile import SpooledTemporaryFile

import pytest
from starlette import formparsers

from reqtools.exceptions import (
    FileTypeNotAllowed,
    InvalidFileName,
    NoFileUploaded,
    NotMultipartRequest,
    RequestBodyTooLarge,
)
from reqtools.schemas.uploads import DEFAULT_MAX_FILE_SIZE, UploadConfiguration
from reqtools.services.uploads import UploadPipeline, upload_file, upload_files

ONE_MB = 1024 * 1024


def _stored(upload_dir):
    return sorted(p.name for p in upload_dir.iterdir())


# -------------------------
# 1) Single file
# -------------------------
@pytest.mark.anyio
async def test_upload_without_rename_keeps_name(multipart_request, upload_dir):
    req = multipart_request([("file", ("x.txt", b"hello", "text/plain"))])

    rec = await upload_file(req, upload_dir, rename=False, config=UploadConfiguration(max_file_size=ONE_MB))

    assert rec.original_file_name == "x.txt"
    assert rec.new_file_name == "x.txt"
    assert rec.file_size == 5
    assert (upload_dir / "x.txt").read_bytes() == b"hello"


@pytest.mark.anyio
async def test_upload_with_rename_keeps_extension(multipart_request, upload_dir):
    content = "outro conteúdo de arquivo".encode()
    req = multipart_request([("file", ("testfile.txt", content, "text/plain"))])

    rec = await upload_file(req, upload_dir, config=UploadConfiguration(max_file_size=ONE_MB))

    assert rec.new_file_name != rec.original_file_name
    assert rec.new_file_name.endswith(".txt")
    assert len(rec.new_file_name) == 25 + len(".txt")
    assert rec.file_size == len(content)
    assert os.path.getsize(upload_dir / rec.new_file_name) == len(content)


@pytest.mark.anyio
async def test_only_first_file_under_field_is_stored(multipart_request, upload_dir):
    req = multipart_request([
        ("file", ("a.txt", b"first", "text/plain")),
        ("file", ("b.txt", b"second", "text/plain")),
    ])

    rec = await upload_file(req, upload_dir, rename=False)

    assert rec.new_file_name == "a.txt"
    assert _stored(upload_dir) == ["a.txt"]


@pytest.mark.anyio
async def test_no_file_field(multipart_request, upload_dir):
    req = multipart_request([("other", ("a.txt", b"data", "text/plain"))])

    with pytest.raises(NoFileUploaded, match="no file uploaded"):
        await upload_file(req, upload_dir)
    assert _stored(upload_dir) == []


@pytest.mark.anyio
async def test_part_without_filename_is_not_a_file(multipart_request, upload_dir):
    req = multipart_request([("file", ("", b"", "application/octet-stream"))])

    with pytest.raises(NoFileUploaded):
        await upload_file(req, upload_dir)


@pytest.mark.anyio
async def test_body_too_large_rejected_from_content_length(multipart_request, upload_dir):
    req = multipart_request([("file", ("big.txt", b"a" * (ONE_MB + 1), "text/plain"))])

    with pytest.raises(RequestBodyTooLarge) as exc:
        await upload_file(req, upload_dir, rename=False, config=UploadConfiguration(max_file_size=ONE_MB))
    assert exc.value.limit == ONE_MB
    assert "request body too large" in str(exc.value)
    assert _stored(upload_dir) == []


@pytest.mark.anyio
async def test_body_too_large_rejected_while_streaming(multipart_request, upload_dir):
    req = multipart_request(
        [("file", ("big.txt", b"a" * (ONE_MB + 1), "text/plain"))],
        drop_content_length=True,
    )

    with pytest.raises(RequestBodyTooLarge):
        await upload_file(req, upload_dir, rename=False, config=UploadConfiguration(max_file_size=ONE_MB))
    assert _stored(upload_dir) == []


@pytest.mark.anyio
async def test_spooled_parts_closed_when_body_too_large(multipart_request, upload_dir, monkeypatch):
    created = []

    class TrackingSpool(SpooledTemporaryFile):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            created.append(self)

    monkeypatch.setattr(formparsers, "SpooledTemporaryFile", TrackingSpool)
    req = multipart_request(
        [
            ("file", ("small.txt", b"ok", "text/plain")),
            ("file", ("big.txt", b"a" * (ONE_MB + 1), "text/plain")),
        ],
        drop_content_length=True,
    )

    with pytest.raises(RequestBodyTooLarge):
        await upload_file(req, upload_dir, rename=False, config=UploadConfiguration(max_file_size=ONE_MB))

    assert len(created) == 2
    assert all(f.closed for f in created)


@pytest.mark.anyio
async def test_not_multipart(json_request, upload_dir):
    with pytest.raises(NotMultipartRequest):
        await upload_file(json_request(b"{}"), upload_dir)


@pytest.mark.anyio
async def test_missing_target_dir_surfaces_os_error(multipart_request, tmp_path):
    req = multipart_request([("file", ("x.txt", b"hello", "text/plain"))])

    with pytest.raises(FileNotFoundError):
        await upload_file(req, tmp_path / "does-not-exist", rename=False)


# -------------------------
# 2) Type allow-list
# -------------------------
@pytest.mark.anyio
@pytest.mark.parametrize("rename", [False, True])
async def test_allowed_type(multipart_request, upload_dir, png_bytes, rename):
    req = multipart_request([("file", ("test.png", png_bytes, "image/png"))])
    config = UploadConfiguration(allowed_types={"image/jpeg", "image/png"})

    rec = await upload_file(req, upload_dir, rename=rename, config=config)

    assert rec.file_size == len(png_bytes)
    assert (upload_dir / rec.new_file_name).read_bytes() == png_bytes


@pytest.mark.anyio
async def test_type_not_allowed(multipart_request, upload_dir, png_bytes):
    req = multipart_request([("file", ("test.png", png_bytes, "image/png"))])
    config = UploadConfiguration(allowed_types={"image/jpeg"})

    with pytest.raises(FileTypeNotAllowed, match="file type image/png not allowed") as exc:
        await upload_file(req, upload_dir, rename=False, config=config)
    assert exc.value.detected_type == "image/png"
    assert _stored(upload_dir) == []


@pytest.mark.anyio
async def test_declared_content_type_is_ignored(multipart_request, upload_dir):
    # client claims png, bytes are plain text
    req = multipart_request([("file", ("fake.png", b"just text", "image/png"))])
    config = UploadConfiguration(allowed_types={"image/png"})

    with pytest.raises(FileTypeNotAllowed) as exc:
        await upload_file(req, upload_dir, config=config)
    assert exc.value.detected_type == "text/plain; charset=utf-8"


@pytest.mark.anyio
async def test_allow_list_is_case_insensitive(multipart_request, upload_dir, png_bytes):
    req = multipart_request([("file", ("test.png", png_bytes, "image/png"))])
    config = UploadConfiguration(allowed_types={"IMAGE/PNG"})

    rec = await upload_file(req, upload_dir, config=config)
    assert rec.file_size == len(png_bytes)


# -------------------------
# 3) File names
# -------------------------
@pytest.mark.anyio
async def test_hostile_name_stays_inside_target(multipart_request, upload_dir):
    req = multipart_request([("file", ("../../evil.txt", b"pwned", "text/plain"))])

    rec = await upload_file(req, upload_dir, rename=False)

    assert rec.original_file_name == "../../evil.txt"
    assert rec.new_file_name == "evil.txt"
    assert _stored(upload_dir) == ["evil.txt"]
    assert not (upload_dir.parent / "evil.txt").exists()


@pytest.mark.anyio
async def test_dot_dot_name_rejected(multipart_request, upload_dir):
    req = multipart_request([("file", ("..", b"data", "text/plain"))])

    with pytest.raises(InvalidFileName):
        await upload_file(req, upload_dir, rename=False)
    assert _stored(upload_dir) == []


@pytest.mark.anyio
async def test_existing_file_is_overwritten(multipart_request, upload_dir):
    (upload_dir / "x.txt").write_bytes(b"old content")
    req = multipart_request([("file", ("x.txt", b"new", "text/plain"))])

    await upload_file(req, upload_dir, rename=False)

    assert (upload_dir / "x.txt").read_bytes() == b"new"
    assert _stored(upload_dir) == ["x.txt"]


# -------------------------
# 4) Multiple files
# -------------------------
@pytest.mark.anyio
async def test_upload_files_processes_every_field_in_order(multipart_request, upload_dir):
    req = multipart_request(
        [
            ("first", ("a.txt", b"aaa", "text/plain")),
            ("second", ("b.txt", b"bb", "text/plain")),
            ("second", ("c.txt", b"c", "text/plain")),
        ],
        data={"note": "not a file"},
    )

    recs = await upload_files(req, upload_dir, rename=False)

    assert [r.new_file_name for r in recs] == ["a.txt", "b.txt", "c.txt"]
    assert [r.file_size for r in recs] == [3, 2, 1]
    assert _stored(upload_dir) == ["a.txt", "b.txt", "c.txt"]


@pytest.mark.anyio
async def test_upload_files_stops_at_first_failure(multipart_request, upload_dir, png_bytes):
    req = multipart_request([
        ("file", ("ok.png", png_bytes, "image/png")),
        ("file", ("bad.txt", b"plain text", "text/plain")),
        ("file", ("never.png", png_bytes, "image/png")),
    ])
    config = UploadConfiguration(allowed_types={"image/png"})

    with pytest.raises(FileTypeNotAllowed):
        await upload_files(req, upload_dir, rename=False, config=config)

    # no rollback of what was already written
    assert _stored(upload_dir) == ["ok.png"]


@pytest.mark.anyio
async def test_upload_files_empty_form(multipart_request, upload_dir):
    req = multipart_request([("other", ("", b"", "text/plain"))], data={"a": "b"})

    assert await upload_files(req, upload_dir) == []


# -------------------------
# 5) Config + pipeline
# -------------------------
def test_zero_max_size_means_default():
    assert UploadConfiguration(max_file_size=0).max_file_size == DEFAULT_MAX_FILE_SIZE
    assert UploadConfiguration().max_file_size == DEFAULT_MAX_FILE_SIZE


def test_negative_max_size_rejected():
    with pytest.raises(ValueError):
        UploadConfiguration(max_file_size=-1)


def test_configuration_is_frozen():
    config = UploadConfiguration()
    with pytest.raises(ValueError):
        config.max_file_size = 5


@pytest.mark.anyio
async def test_pipeline_uses_its_config(multipart_request, upload_dir):
    pipeline = UploadPipeline(UploadConfiguration(max_file_size=100))
    req = multipart_request([("file", ("x.txt", b"a" * 500, "text/plain"))])

    with pytest.raises(RequestBodyTooLarge) as exc:
        await pipeline.upload_file(req, upload_dir)
    assert exc.value.limit == 100
