"""Integration tests for the HTTP API, driven in-process via httpx.ASGITransport.

The synthesis backend is replaced with an in-memory fake; everything
else (sessions, orchestrator, codec, WAV encoding) is real.
"""

from __future__ import annotations

import asyncio
import io
import struct
import wave

import httpx
import pytest

from longform_tts.errors import ServiceError
from longform_tts.server import main as server_main
from longform_tts.session_manager import SessionManager

PCM = struct.pack("<4h", 0, 1000, -1000, 0)


class FakeSynthesizer:
    """Records calls; optionally blocks until released or fails."""

    def __init__(self) -> None:
        self.payload = PCM
        self.calls: list[tuple[str, str, str | None]] = []
        self.gate: asyncio.Event | None = None
        self.started = asyncio.Event()
        self.error: Exception | None = None

    async def synthesize(self, text, voice_id, instruction=None):
        self.calls.append((text, voice_id, instruction))
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.payload

    async def close(self):
        pass


@pytest.fixture
def synth():
    return FakeSynthesizer()


@pytest.fixture
def manager(synth, monkeypatch):
    manager = SessionManager(server_main.settings, synth)
    monkeypatch.setattr(server_main, "session_manager", manager)
    return manager


@pytest.fixture
async def client(manager):
    transport = httpx.ASGITransport(app=server_main.app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    await manager.close_all()


async def _finish(manager: SessionManager, client_id: str) -> None:
    session = await manager.get(client_id)
    await asyncio.gather(*session.generation_tasks)


class TestHealthAndVoices:
    async def test_health(self, client: httpx.AsyncClient):
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "sessions": 0}

    async def test_list_voices(self, client: httpx.AsyncClient):
        resp = await client.get("/sessions/alice/voices")
        assert resp.status_code == 200
        data = resp.json()
        assert [v["name"] for v in data["custom"]] == ["R J Raihan"]
        assert len(data["catalog"]) == 35
        assert data["catalog"][0] == {
            "id": "Puck",
            "name": "Puck",
            "style": "Soft, Narrative",
            "gender": "Male",
            "custom": False,
        }

    async def test_add_voice(self, client: httpx.AsyncClient):
        resp = await client.post("/sessions/alice/voices", json={"name": "Narrator"})
        assert resp.status_code == 201
        voice = resp.json()
        assert voice["style"] == "Custom Cloned Style"
        assert voice["custom"] is True

        listed = (await client.get("/sessions/alice/voices")).json()
        assert [v["name"] for v in listed["custom"]] == ["Narrator", "R J Raihan"]

    async def test_add_voice_requires_name(self, client: httpx.AsyncClient):
        resp = await client.post("/sessions/alice/voices", json={"name": "  ", "style": "x"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Please give your voice a name."

    async def test_invalid_client_id(self, client: httpx.AsyncClient):
        resp = await client.get("/sessions/bad%20id!/voices")
        assert resp.status_code == 422


class TestGenerate:
    """Generation lifecycle over HTTP."""

    async def test_generate_and_download(self, client, manager, synth):
        resp = await client.post(
            "/sessions/alice/generate",
            json={"text": "Hello world. This is a test.", "speed": 70},
        )
        assert resp.status_code == 202
        body = resp.json()
        assert body["epoch"] == 1
        assert body["segment_count"] == 1
        assert body["voice_id"] == "Kore"
        assert "Speaking Pace: Very Fast" in body["instruction"]

        await _finish(manager, "alice")

        status = (await client.get("/sessions/alice/status")).json()
        assert status["state"] == "COMPLETED"
        assert status["has_recording"] is True
        assert status["error"] is None

        wav_resp = await client.get("/sessions/alice/recording.wav")
        assert wav_resp.status_code == 200
        assert wav_resp.headers["content-type"] == "audio/wav"
        disposition = wav_resp.headers["content-disposition"]
        assert disposition.startswith('attachment; filename="tts-r-2.0-Kore-')
        with wave.open(io.BytesIO(wav_resp.content), "rb") as wf:
            assert wf.getnchannels() == 1
            assert wf.getframerate() == 24000
            assert wf.getnframes() == 4

    async def test_empty_text_rejected(self, client, synth):
        resp = await client.post("/sessions/alice/generate", json={"text": "   "})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Please enter some text to generate audio."
        status = (await client.get("/sessions/alice/status")).json()
        assert status["epoch"] == 0
        assert synth.calls == []

    async def test_unknown_voice(self, client):
        resp = await client.post("/sessions/alice/generate", json={"text": "Hi.", "voice_id": "Nobody"})
        assert resp.status_code == 404

    async def test_bad_emotion(self, client):
        resp = await client.post(
            "/sessions/alice/generate", json={"text": "Hi.", "emotions": {"Bored": 10}}
        )
        assert resp.status_code == 422

    async def test_custom_voice_generation(self, client, manager, synth):
        voice = (await client.post("/sessions/alice/voices", json={"name": "Narrator", "style": "Slow"})).json()
        resp = await client.post("/sessions/alice/generate", json={"text": "Hi.", "voice_id": voice["id"]})
        assert resp.json()["voice_id"] == "Puck"
        await _finish(manager, "alice")
        _, voice_id, instruction = synth.calls[0]
        assert voice_id == "Puck"
        assert instruction.endswith('Voice Identity: Imitate the style of "Narrator". Description: Slow.')

    async def test_failure_reported_in_status(self, client, manager, synth):
        synth.error = ServiceError("quota exceeded")
        await client.post("/sessions/alice/generate", json={"text": "Hi."})
        await _finish(manager, "alice")
        status = (await client.get("/sessions/alice/status")).json()
        assert status["state"] == "FAILED"
        assert status["error"] == "Failed to generate speech. quota exceeded"
        assert (await client.get("/sessions/alice/recording.wav")).status_code == 404

    async def test_cancel_drops_in_flight_result(self, client, manager, synth):
        synth.gate = asyncio.Event()
        await client.post("/sessions/alice/generate", json={"text": "One. Two."})
        await synth.started.wait()

        resp = await client.post("/sessions/alice/cancel")
        assert resp.status_code == 200
        assert resp.json()["state"] == "IDLE"
        assert resp.json()["epoch"] == 2

        synth.gate.set()
        await _finish(manager, "alice")
        status = (await client.get("/sessions/alice/status")).json()
        assert status["state"] == "IDLE"
        assert status["has_recording"] is False

    async def test_unknown_session(self, client):
        assert (await client.get("/sessions/ghost/status")).status_code == 404
        assert (await client.post("/sessions/ghost/cancel")).status_code == 404
        assert (await client.get("/sessions/ghost/recording.wav")).status_code == 404


class TestRecordingAndPlayback:
    @pytest.fixture
    async def generated(self, client, manager, synth):
        synth.payload = b"\x00\x00" * 48000
        await client.post("/sessions/alice/generate", json={"text": "Hello."})
        await _finish(manager, "alice")
        return client

    async def test_play_and_stop(self, generated: httpx.AsyncClient):
        playing = (await generated.post("/sessions/alice/playback/play")).json()
        assert playing["is_playing"] is True
        assert playing["duration"] == "00:02"

        stopped = (await generated.post("/sessions/alice/playback/stop")).json()
        assert stopped["is_playing"] is False

    async def test_discard_recording(self, generated: httpx.AsyncClient):
        resp = await generated.delete("/sessions/alice/recording")
        assert resp.status_code == 200
        assert resp.json()["has_recording"] is False
        assert resp.json()["state"] == "IDLE"
        assert (await generated.delete("/sessions/alice/recording")).status_code == 404
        assert (await generated.post("/sessions/alice/playback/play")).status_code == 404

    async def test_close_session(self, generated: httpx.AsyncClient):
        assert (await generated.delete("/sessions/alice")).status_code == 204
        assert (await generated.get("/sessions/alice/status")).status_code == 404
        assert (await generated.delete("/sessions/alice")).status_code == 404
