"""Gemini TTS adapter: HTTP transport.

Sends one text segment per request to the Gemini ``generateContent``
endpoint with audio response modality and returns the decoded PCM
payload (raw PCM16 LE, mono, 24kHz).
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
from typing import Any

import aiohttp

from longform_tts.config import Settings
from longform_tts.errors import MalformedAudioError, ServiceError
from longform_tts.logging import get_logger

logger = get_logger("tts.gemini_http")


def build_prompt(text: str, instruction: str | None) -> str:
    """Embed the instruction ahead of the text.

    The TTS model rejects the separate system-instruction field, so
    instructions travel inside the prompt.
    """
    if instruction and instruction.strip():
        return f"{instruction}\n\n{text}"
    return text


def build_payload(text: str, voice_id: str, instruction: str | None = None) -> dict[str, Any]:
    return {
        "contents": [{"parts": [{"text": build_prompt(text, instruction)}]}],
        "generationConfig": {
            "responseModalities": ["AUDIO"],
            "speechConfig": {
                "voiceConfig": {
                    "prebuiltVoiceConfig": {"voiceName": voice_id},
                },
            },
        },
    }


def extract_audio(data: dict[str, Any]) -> str | None:
    """Pull the base64 audio string out of a generateContent response."""
    try:
        return data["candidates"][0]["content"]["parts"][0]["inlineData"]["data"] or None
    except (KeyError, IndexError, TypeError):
        return None


def _error_detail(body: str) -> str:
    try:
        return json.loads(body)["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return body.strip()[:500]


class GeminiHTTPSynthesizer:
    """HTTP-based synthesizer for Gemini TTS.

    Implements the SpeechSynthesizer protocol.  Every failure mode is
    surfaced as ``ServiceError`` (or ``MalformedAudioError`` for an
    undecodable payload); retries are left to the caller.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._url = settings.gemini_speech_url
        self._api_key = settings.gemini_api_key
        self._timeout_s = settings.gemini_timeout_s
        self._session: aiohttp.ClientSession | None = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self._timeout_s)
            )
        return self._session

    async def synthesize(
        self,
        text: str,
        voice_id: str,
        instruction: str | None = None,
    ) -> bytes:
        """Synthesize one segment and return raw PCM16 bytes."""
        if not self._api_key:
            raise ServiceError("API key is missing. Please configure GEMINI_API_KEY.")

        session = await self._ensure_session()
        payload = build_payload(text, voice_id, instruction)
        headers = {"x-goog-api-key": self._api_key}

        try:
            async with session.post(self._url, json=payload, headers=headers) as resp:
                if resp.status != 200:
                    detail = _error_detail(await resp.text())
                    logger.error(
                        "Gemini TTS error %d: %s",
                        resp.status,
                        detail,
                        extra={"voice_id": voice_id, "error_code": f"http_{resp.status}"},
                    )
                    raise ServiceError(detail or f"HTTP {resp.status}", status=resp.status)
                data = await resp.json()
        except asyncio.CancelledError:
            raise
        except asyncio.TimeoutError as exc:
            logger.error("Gemini TTS request timed out after %.0fs", self._timeout_s)
            raise ServiceError(f"Request timed out after {self._timeout_s:.0f}s") from exc
        except aiohttp.ClientError as exc:
            logger.error("Gemini TTS request failed: %s", exc)
            raise ServiceError(f"Request failed: {exc}") from exc

        audio_b64 = extract_audio(data)
        if not audio_b64:
            raise ServiceError("No audio data returned from the model.")

        try:
            return base64.b64decode(audio_b64, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise MalformedAudioError(f"Audio payload is not valid base64: {exc}") from exc

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None
        logger.info("GeminiHTTP closed")
