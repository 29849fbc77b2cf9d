"""FastAPI gateway in front of the Gemini API.

Endpoints:
- GET /health
- POST /generate-text            { "prompt": "..." }
- POST /generate-from-image      multipart: image, prompt?
- POST /generate-from-document   multipart: document, prompt?
- POST /generate-from-audio      multipart: audio, prompt?
"""
from __future__ import annotations
import argparse
import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from dotenv import find_dotenv, load_dotenv
from fastapi import APIRouter, Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from starlette.datastructures import UploadFile as StarletteUploadFile

from gemini_gateway import __version__
from gemini_gateway.common.config import CONFIG_ENV_VAR, ConfigError, Settings, load_settings
from gemini_gateway.common.logging_setup import setup_logging
from gemini_gateway.common.schema import UploadedFile, build_parts
from gemini_gateway.serve.extract import extract_text
from gemini_gateway.serve.model_client import GeminiClient, build_payload
from gemini_gateway.serve.uploads import inline_part, stored_upload

LOGGER = logging.getLogger("gemini_gateway.serve.app")

REDACTED_DETAILS = "Internal error"

class GenerateTextIn(BaseModel):
    prompt: str | None = None

class GenerateOut(BaseModel):
    text: str

class AudioGenerateOut(GenerateOut):
    model_config = ConfigDict(populate_by_name=True)

    source_file: str = Field(alias="sourceFile")
    mime_type: str = Field(alias="mimeType")


class ApiError(Exception):
    """Short-circuits a request with a JSON body rendered as-is."""

    def __init__(self, status_code: int, body: dict[str, Any]) -> None:
        super().__init__(body.get("error", ""))
        self.status_code = status_code
        self.body = body


def get_settings(request: Request) -> Settings:
    return request.app.state.settings

def get_model_client(request: Request) -> GeminiClient:
    return request.app.state.model_client


def _is_file(value: Any) -> bool:
    # A same-named plain text field parses as str; it does not count as an upload.
    return isinstance(value, StarletteUploadFile)


async def _raw_form_text(request: Request, name: str) -> str | None:
    """Form value as sent; FastAPI maps an empty field to None before the handler sees it."""
    value = (await request.form()).get(name)
    return value if isinstance(value, str) else None


def _failure(summary: str, exc: Exception, settings: Settings, **extra: str) -> ApiError:
    details = REDACTED_DETAILS if settings.redact_error_details else str(exc)
    return ApiError(500, {"error": summary, "details": details, **extra})


async def _generate_from_upload(
    model_client: GeminiClient,
    settings: Settings,
    upload: UploadFile,
    prompt: str | None,
) -> tuple[str, UploadedFile]:
    """Store the upload, send it inline after the prompt, and return the generated text."""
    async with stored_upload(upload, settings.upload_dir, keep=settings.keep_uploads) as uploaded:
        attachment = await inline_part(uploaded)
    payload = build_payload(build_parts(prompt, attachment))
    resp = await model_client.generate_content(payload)
    return extract_text(resp), uploaded


router = APIRouter()

@router.get("/health")
def health(settings: Settings = Depends(get_settings)) -> dict[str, str]:
    return {"status": "ok", "model": settings.gemini_model_name}


@router.post("/generate-text", response_model=GenerateOut)
async def generate_text(
    body: GenerateTextIn | None = None,
    model_client: GeminiClient = Depends(get_model_client),
    settings: Settings = Depends(get_settings),
) -> GenerateOut:
    prompt = body.prompt if body else None
    if not prompt:
        raise ApiError(400, {"error": "Prompt is required"})

    try:
        resp = await model_client.generate_content(prompt)
    except Exception as e:
        LOGGER.error("Error generating text: %s", e)
        raise _failure("Failed to generate text", e, settings) from e
    return GenerateOut(text=extract_text(resp))


@router.post("/generate-from-image", response_model=GenerateOut)
async def generate_from_image(
    image: UploadFile | str | None = File(default=None),
    prompt: str | None = Form(default=None),
    model_client: GeminiClient = Depends(get_model_client),
    settings: Settings = Depends(get_settings),
) -> GenerateOut:
    if not _is_file(image):
        raise ApiError(400, {"error": "Image file is required"})

    try:
        text, _ = await _generate_from_upload(model_client, settings, image, prompt)
    except Exception as e:
        LOGGER.error("Error generating from image: %s", e)
        raise _failure("Failed to generate from image", e, settings) from e
    return GenerateOut(text=text)


@router.post("/generate-from-document", response_model=GenerateOut)
async def generate_from_document(
    document: UploadFile | str | None = File(default=None),
    prompt: str | None = Form(default=None),
    model_client: GeminiClient = Depends(get_model_client),
    settings: Settings = Depends(get_settings),
) -> GenerateOut:
    if not _is_file(document):
        raise ApiError(400, {"error": "Document file is required"})

    try:
        text, _ = await _generate_from_upload(
            model_client, settings, document, prompt or settings.document_prompt
        )
    except Exception as e:
        LOGGER.error("Error generating from document: %s", e)
        raise _failure("Failed to generate from document", e, settings) from e
    return GenerateOut(text=text)


@router.post("/generate-from-audio", response_model=AudioGenerateOut)
async def generate_from_audio(
    request: Request,
    audio: UploadFile | str | None = File(default=None),
    prompt: str | None = Form(default=None),
    model_client: GeminiClient = Depends(get_model_client),
    settings: Settings = Depends(get_settings),
) -> AudioGenerateOut:
    if not _is_file(audio):
        raise ApiError(400, {
            "error": "Audio file is required",
            "message": "Please upload an audio file (MP3 or WAV format)",
        })

    # Only a missing prompt takes the default; an explicit empty one sends no text part.
    if prompt is None:
        prompt = await _raw_form_text(request, "prompt")
    if prompt is None:
        prompt = settings.audio_prompt
    try:
        text, uploaded = await _generate_from_upload(model_client, settings, audio, prompt)
    except Exception as e:
        LOGGER.error("Error processing audio file: %s", e)
        raise _failure(
            "Failed to process audio file", e, settings,
            suggestion="Please ensure the audio file is in a supported format",
        ) from e
    return AudioGenerateOut(
        text=text,
        source_file=uploaded.original_name,
        mime_type=uploaded.mime_type,
    )


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.body)

async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
    )


def create_app(settings: Settings | None = None, model_client: GeminiClient | None = None) -> FastAPI:
    """
    Build the gateway application.

    Args:
        settings: Gateway settings; loaded from the environment on startup when omitted.
        model_client: Model handle; built from settings on startup when omitted.
    """
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if app.state.settings is None:
            load_dotenv(find_dotenv(usecwd=True))
            app.state.settings = load_settings()
            setup_logging(app.state.settings.log_level)
        if app.state.model_client is None:
            # Missing credentials abort startup rather than failing per request.
            app.state.model_client = GeminiClient.from_settings(app.state.settings)
        LOGGER.info("Gateway ready; model=%s", app.state.settings.gemini_model_name)
        yield

    app = FastAPI(title="Gemini Gateway", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.model_client = model_client
    app.include_router(router)
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    return app


app = create_app()


def main() -> None:
    load_dotenv(find_dotenv(usecwd=True))
    ap = argparse.ArgumentParser(description="Serve the Gemini gateway")
    ap.add_argument("--config", default=None, help=f"YAML config path (default: ${CONFIG_ENV_VAR})")
    ap.add_argument("--host", default=None)
    ap.add_argument("--port", type=int, default=None)
    ap.add_argument("--log-level", default=None)
    args = ap.parse_args()

    if args.config:
        os.environ[CONFIG_ENV_VAR] = args.config
    overrides = {"host": args.host, "port": args.port, "log_level": args.log_level}
    try:
        settings = load_settings(**{k: v for k, v in overrides.items() if v is not None})
    except ConfigError as e:
        ap.error(str(e))

    setup_logging(settings.log_level)
    try:
        model_client = GeminiClient.from_settings(settings)
    except ConfigError as e:
        LOGGER.error("%s", e)
        raise SystemExit(1)

    LOGGER.info("Server running on port %s", settings.port)
    uvicorn.run(
        create_app(settings, model_client),
        host=settings.host,
        port=settings.port,
        log_config=None,
    )

if __name__ == "__main__":
    main()
