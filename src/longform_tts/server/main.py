"""FastAPI generation server: per-client sessions, generation, download."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import FastAPI, HTTPException, Path
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from longform_tts.adapters.tts.gemini_http import GeminiHTTPSynthesizer
from longform_tts.config import get_settings
from longform_tts.errors import ValidationError
from longform_tts.logging import get_logger, setup_logging
from longform_tts.pipeline.instructions import VoiceParams
from longform_tts.pipeline.wav_container import encode_wav, recording_filename
from longform_tts.playback import format_time
from longform_tts.server.schemas import (
    CustomVoiceRequest,
    GenerateRequest,
    GenerateResponse,
    StatusResponse,
    VoiceOut,
    VoicesResponse,
)
from longform_tts.session import Session
from longform_tts.session_manager import SessionCapacityError, SessionManager
from longform_tts.voices import VOICE_OPTIONS

settings = get_settings()
setup_logging(settings.log_level)
logger = get_logger("server")

session_manager: SessionManager | None = None

ClientId = Annotated[str, Path(min_length=1, max_length=128, pattern=r"^[a-zA-Z0-9_\-]+$")]


def get_session_manager() -> SessionManager:
    """Return the process-wide session manager, creating it on first use."""
    global session_manager
    if session_manager is None:
        session_manager = SessionManager(settings, GeminiHTTPSynthesizer(settings))
    return session_manager


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    yield
    if session_manager is not None:
        await session_manager.close_all()
        await session_manager.synthesizer.close()


app = FastAPI(
    title="Longform TTS Server",
    version="0.1.0",
    docs_url="/docs",
    lifespan=lifespan,
)

# CORS: restrict origins in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


async def _existing(client_id: str) -> Session:
    session = await get_session_manager().get(client_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session '{client_id}'")
    return session


async def _open(client_id: str) -> Session:
    try:
        return await get_session_manager().get_or_create(client_id)
    except SessionCapacityError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc


def _status(session: Session) -> StatusResponse:
    orchestrator = session.orchestrator
    status = orchestrator.status
    recording = orchestrator.recording
    duration_s = recording.duration_s if recording is not None else 0.0
    return StatusResponse(
        state=status.state.name,
        message=status.message,
        epoch=orchestrator.epoch,
        error=orchestrator.last_error,
        has_recording=recording is not None,
        duration_s=duration_s,
        is_playing=session.playback.is_playing,
        position=format_time(session.playback.elapsed()),
        duration=format_time(duration_s),
    )


@app.get("/health")
async def health() -> dict[str, object]:
    return {"status": "ok", "sessions": get_session_manager().active_count}


@app.get("/sessions/{client_id}/voices", response_model=VoicesResponse)
async def list_voices(client_id: ClientId) -> VoicesResponse:
    """List the session's custom voices (newest first) and the catalog."""
    session = await _open(client_id)
    return VoicesResponse(
        custom=[
            VoiceOut(id=v.id, name=v.display_name, style=v.style_text, custom=True)
            for v in session.voices.custom_voices
        ],
        catalog=[
            VoiceOut(id=o.id, name=o.name, style=o.style, gender=o.gender)
            for o in VOICE_OPTIONS
        ],
    )


@app.post("/sessions/{client_id}/voices", response_model=VoiceOut, status_code=201)
async def add_voice(req: CustomVoiceRequest, client_id: ClientId) -> VoiceOut:
    """Register a cloned voice for this session."""
    session = await _open(client_id)
    try:
        voice = session.voices.add_custom(req.name, req.style)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return VoiceOut(id=voice.id, name=voice.display_name, style=voice.style_text, custom=True)


@app.delete("/sessions/{client_id}", status_code=204)
async def close_session(client_id: ClientId) -> Response:
    """Cancel any generation and release the session."""
    if not await get_session_manager().remove(client_id):
        raise HTTPException(status_code=404, detail=f"Unknown session '{client_id}'")
    return Response(status_code=204)


@app.post("/sessions/{client_id}/generate", response_model=GenerateResponse, status_code=202)
async def generate(req: GenerateRequest, client_id: ClientId) -> GenerateResponse:
    """Start a generation in the background; poll ``status`` for progress."""
    session = await _open(client_id)
    voice_id = req.voice_id or settings.default_voice_id
    voice = session.voices.get(voice_id)
    if voice is None:
        raise HTTPException(status_code=404, detail=f"Unknown voice '{voice_id}'")

    try:
        params = VoiceParams(
            voice=voice,
            emotions=req.emotions,
            speed=req.speed,
            description=req.description,
        )
        plan = session.start_generation(req.text, params)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    logger.info(
        "Generation accepted for %s",
        client_id,
        extra={
            "session_id": session.session_id,
            "epoch": plan.epoch,
            "segment_count": len(plan.segments),
            "event": "generate_accepted",
        },
    )
    return GenerateResponse(
        epoch=plan.epoch,
        segment_count=len(plan.segments),
        voice_id=plan.voice_id,
        instruction=plan.instruction,
    )


@app.post("/sessions/{client_id}/cancel", response_model=StatusResponse)
async def cancel(client_id: ClientId) -> StatusResponse:
    session = await _existing(client_id)
    session.orchestrator.cancel()
    return _status(session)


@app.get("/sessions/{client_id}/status", response_model=StatusResponse)
async def status(client_id: ClientId) -> StatusResponse:
    session = await _existing(client_id)
    return _status(session)


@app.get("/sessions/{client_id}/recording.wav")
async def download_recording(client_id: ClientId) -> Response:
    """Serve the assembled recording as a 16-bit PCM WAV attachment."""
    session = await _existing(client_id)
    recording = session.orchestrator.recording
    if recording is None:
        raise HTTPException(status_code=404, detail="No recording available")

    filename = recording_filename(
        session.orchestrator.recording_voice_name,
        prefix=settings.download_prefix,
    )
    return Response(
        content=encode_wav(recording),
        media_type="audio/wav",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.delete("/sessions/{client_id}/recording", response_model=StatusResponse)
async def discard_recording(client_id: ClientId) -> StatusResponse:
    session = await _existing(client_id)
    if session.orchestrator.recording is None:
        raise HTTPException(status_code=404, detail="No recording available")
    session.playback.reset()
    session.orchestrator.discard_recording()
    return _status(session)


@app.post("/sessions/{client_id}/playback/play", response_model=StatusResponse)
async def play(client_id: ClientId) -> StatusResponse:
    session = await _existing(client_id)
    recording = session.orchestrator.recording
    if recording is None:
        raise HTTPException(status_code=404, detail="No recording available")
    session.playback.play(recording.duration_s)
    return _status(session)


@app.post("/sessions/{client_id}/playback/stop", response_model=StatusResponse)
async def stop(client_id: ClientId) -> StatusResponse:
    session = await _existing(client_id)
    session.playback.stop()
    return _status(session)
