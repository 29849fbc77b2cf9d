"""Transient storage for multipart uploads.

Each upload is written under a per-request unique name so concurrent uploads
sharing a filename never overwrite one another.
"""
from __future__ import annotations
import base64
import logging
import shutil
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path, PurePosixPath, PureWindowsPath

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from gemini_gateway.common.schema import InlineDataPart, UploadedFile

LOGGER = logging.getLogger("gemini_gateway.serve.uploads")

DEFAULT_MIME_TYPE = "application/octet-stream"


def _safe_name(filename: str | None) -> str:
    # Browsers may send full client paths; keep only the final component.
    name = PureWindowsPath(PurePosixPath(filename or "").name).name
    return name or "upload"


def _write(upload: UploadFile, dest: Path) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    upload.file.seek(0)
    with open(dest, "wb") as f:
        shutil.copyfileobj(upload.file, f)


async def store_upload(upload: UploadFile, upload_dir: Path) -> UploadedFile:
    """
    Write an uploaded file to ``upload_dir``.

    Args:
        upload: The multipart file from the request.
        upload_dir: Directory for transient storage.

    Returns:
        Where the file was stored, with its original name and declared type.
    """
    original = upload.filename or ""
    dest = Path(upload_dir) / f"{uuid.uuid4().hex}-{_safe_name(original)}"
    await run_in_threadpool(_write, upload, dest)
    LOGGER.debug("Stored upload %r at %s", original, dest)
    return UploadedFile(
        path=dest,
        original_name=original,
        mime_type=upload.content_type or DEFAULT_MIME_TYPE,
    )


async def read_base64(uploaded: UploadedFile) -> str:
    data = await run_in_threadpool(uploaded.path.read_bytes)
    return base64.b64encode(data).decode("ascii")


async def inline_part(uploaded: UploadedFile) -> InlineDataPart:
    return InlineDataPart(mime_type=uploaded.mime_type, data=await read_base64(uploaded))


def discard(uploaded: UploadedFile) -> None:
    try:
        uploaded.path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        LOGGER.warning("Could not remove upload %s: %s", uploaded.path, e)


@asynccontextmanager
async def stored_upload(
    upload: UploadFile, upload_dir: Path, keep: bool = False
) -> AsyncIterator[UploadedFile]:
    """Store ``upload`` for the duration of the block, then remove it unless ``keep``."""
    uploaded = await store_upload(upload, upload_dir)
    try:
        yield uploaded
    finally:
        if not keep:
            discard(uploaded)
