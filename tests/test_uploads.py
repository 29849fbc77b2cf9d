from __future__ import annotations

import asyncio
import io
from pathlib import Path

from fastapi import UploadFile
from starlette.datastructures import Headers

from gemini_gateway.serve.uploads import read_base64, store_upload, stored_upload


def _upload(name: str | None, data: bytes, content_type: str | None = None) -> UploadFile:
    headers = Headers({"content-type": content_type}) if content_type else None
    return UploadFile(file=io.BytesIO(data), filename=name, headers=headers)


def test_store_keeps_original_name_and_type(tmp_path: Path) -> None:
    uploaded = asyncio.run(store_upload(_upload("song.wav", b"RIFF", "audio/wav"), tmp_path))
    assert uploaded.original_name == "song.wav"
    assert uploaded.mime_type == "audio/wav"
    assert uploaded.path.parent == tmp_path
    assert uploaded.path.name.endswith("-song.wav")
    assert uploaded.path.read_bytes() == b"RIFF"


def test_same_name_gets_distinct_paths(tmp_path: Path) -> None:
    a = asyncio.run(store_upload(_upload("same.txt", b"a"), tmp_path))
    b = asyncio.run(store_upload(_upload("same.txt", b"b"), tmp_path))
    assert a.path != b.path
    assert a.path.read_bytes() == b"a"
    assert b.path.read_bytes() == b"b"


def test_client_path_components_are_stripped(tmp_path: Path) -> None:
    uploaded = asyncio.run(store_upload(_upload("../../etc/passwd", b"x"), tmp_path))
    assert uploaded.path.parent == tmp_path
    assert uploaded.original_name == "../../etc/passwd"

    uploaded = asyncio.run(store_upload(_upload("C:\\Users\\me\\scan.pdf", b"x"), tmp_path))
    assert uploaded.path.name.endswith("-scan.pdf")


def test_missing_type_defaults_to_octet_stream(tmp_path: Path) -> None:
    uploaded = asyncio.run(store_upload(_upload(None, b"x"), tmp_path))
    assert uploaded.mime_type == "application/octet-stream"
    assert uploaded.path.name.endswith("-upload")


def test_read_base64(tmp_path: Path) -> None:
    uploaded = asyncio.run(store_upload(_upload("a.bin", b"hello"), tmp_path))
    assert asyncio.run(read_base64(uploaded)) == "aGVsbG8="


def test_stored_upload_cleans_up(tmp_path: Path) -> None:
    async def run(keep: bool) -> Path:
        async with stored_upload(_upload("a.bin", b"x"), tmp_path, keep=keep) as uploaded:
            assert uploaded.path.exists()
        return uploaded.path

    assert not asyncio.run(run(keep=False)).exists()
    assert asyncio.run(run(keep=True)).exists()
