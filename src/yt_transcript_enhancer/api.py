"""
api.py — FastAPI REST API for yt-transcript-enhancer.

Endpoints:
    GET  /transcript/{video_id}        — Transcript as text, JSON, doc or timestamped lines.
    GET  /transcript/{video_id}/lines  — Timed segments as JSON.
    GET  /metadata/{video_id}          — Title, channel, description, duration.
    POST /enhance/{video_id}           — AI-enhanced transcript (raw text + error on failure).
    GET  /providers                    — Provider configuration status.
    GET  /health                       — Simple health-check.

Run with:
    uvicorn yt_transcript_enhancer.api:app

The global exception handler catches any AppError and converts it to the
appropriate HTTP response using the status code stored on the exception.
Endpoints that do network I/O are plain `def` so FastAPI runs them in its
threadpool.
"""

from __future__ import annotations

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from yt_transcript_enhancer.config import load_settings
from yt_transcript_enhancer.errors import AppError
from yt_transcript_enhancer.extractor import (
    format_doc,
    format_json,
    format_text,
    format_timestamped_lines,
)
from yt_transcript_enhancer.metadata import resolve_metadata
from yt_transcript_enhancer.pipeline import build_acquisition, process_video
from yt_transcript_enhancer.providers import ProviderManager, config_for, create_provider

# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

app = FastAPI(
    title="YouTube Transcript Enhancer API",
    description="Fetch YouTube transcripts and clean them up with OpenAI, OpenRouter or a local Ollama.",
    version="0.1.0",
)


class EnhanceRequest(BaseModel):
    provider: str | None = None
    model: str | None = None


# ---------------------------------------------------------------------------
# Global error handler
# ---------------------------------------------------------------------------

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """
    Translate any AppError (or subclass) into an HTTP error response.

    The http_status on the exception drives the response code, so endpoint
    code just raises the right exception and this handler does the rest.
    """
    return JSONResponse(
        status_code=exc.http_status,
        content={"error": exc.message, "code": exc.code},
    )


# ---------------------------------------------------------------------------
# Endpoints — transcripts and metadata
# ---------------------------------------------------------------------------

@app.get("/transcript/{video_id}", response_model=None)
def get_transcript(
    video_id: str,
    format: str = Query(
        default="text",
        description="'text', 'json' (segments with timings), 'doc' (markdown) or 'lines' ([M:SS] text).",
        pattern="^(text|json|doc|lines)$",
    ),
) -> PlainTextResponse | JSONResponse:
    """
    Fetch the transcript for a single YouTube video.

    **video_id** is the 11-character YouTube video identifier or a full URL
    (URL-encoded).
    """
    result = build_acquisition(load_settings()).acquire(video_id)

    if format == "json":
        return JSONResponse(content=format_json(result.segments, result.video_id))
    if format == "doc":
        return PlainTextResponse(content=format_doc(result.segments))
    if format == "lines":
        return PlainTextResponse(content=format_timestamped_lines(result.segments))
    return PlainTextResponse(content=format_text(result.segments))


@app.get("/transcript/{video_id}/lines")
def get_transcript_lines(video_id: str) -> JSONResponse:
    """Timed segments: text, offset_ms and duration_ms per cue."""
    result = build_acquisition(load_settings()).acquire(video_id)
    return JSONResponse(content={
        "video_id": result.video_id,
        "source": result.source,
        "lines": [segment.to_dict() for segment in result.segments],
    })


@app.get("/metadata/{video_id}")
def get_metadata(video_id: str) -> JSONResponse:
    """Best-effort metadata; unresolved fields hold placeholders."""
    meta = resolve_metadata(video_id, api_key=load_settings().youtube_api_key)
    return JSONResponse(content={
        "title": meta.title,
        "channel": meta.channel,
        "description": meta.description,
        "duration_seconds": meta.duration_seconds,
    })


# ---------------------------------------------------------------------------
# Endpoints — enhancement and providers
# ---------------------------------------------------------------------------

@app.post("/enhance/{video_id}")
def enhance_transcript(video_id: str, body: EnhanceRequest | None = None) -> JSONResponse:
    """
    Enhance a transcript with an LLM.

    Always returns 200 once a transcript was acquired: `enhanced` says
    whether the text is the AI output or the untouched raw transcript, and
    `error` explains a fallback.
    """
    body = body or EnhanceRequest()
    settings = load_settings()
    provider = create_provider(config_for(settings.provider_settings(), body.provider, body.model))
    try:
        processed = process_video(video_id, provider=provider, settings=settings)
    finally:
        provider.close()

    result = processed.enhancement
    return JSONResponse(content={
        "video_id": processed.transcript.video_id,
        "title": processed.metadata.title,
        "provider": provider.tag,
        "enhanced": result.enhanced,
        "chunked": result.chunked,
        "chunk_count": result.chunk_count,
        "error": result.error,
        "text": result.text,
    })


@app.get("/providers")
def list_providers() -> JSONResponse:
    """Configuration validity for every provider, and which one is current."""
    settings = load_settings()
    manager = ProviderManager(settings.provider_settings())
    try:
        validation = manager.get_provider_validation()
    finally:
        manager.close()
    return JSONResponse(content={
        "current": settings.provider,
        "providers": {
            tag: {"valid": result.valid, "errors": result.errors}
            for tag, result in validation.items()
        },
    })


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------

@app.get("/health")
async def health() -> dict:
    """Returns HTTP 200 with {"status": "ok"}."""
    return {"status": "ok"}
