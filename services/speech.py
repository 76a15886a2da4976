# services/speech.py
"""
SpeechBridge: audio -> text and text -> audio.

Two implementations behind one protocol:
  - MockSpeechBridge: deterministic, no network; used in tests and when no
    OpenAI key is configured.
  - OpenAISpeechBridge: Whisper transcription + OpenAI TTS, audio written to
    `speech.audio_dir` and exposed under `speech.public_base_url`.

build_speech_bridge(cfg, api_key) picks one from `speech.provider`.
"""
from __future__ import annotations

import asyncio
import hashlib
import io
import logging
import math
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from openai import AsyncOpenAI

from common.config_loader import cfg_get, mask_key
from services.command_parser import detect_language

_log = logging.getLogger("voice-booking")


@dataclass
class VoiceToTextResult:
    text: str
    confidence: float
    language: str
    duration: float  # seconds (estimated for the mock)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "confidence": self.confidence,
            "language": self.language,
            "duration": self.duration,
        }


@dataclass
class TextToVoiceResult:
    audio_url: str
    format: str
    duration: float
    size: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "audioUrl": self.audio_url,
            "format": self.format,
            "duration": self.duration,
            "size": self.size,
        }


class SpeechBridge(Protocol):
    async def voice_to_text(self, audio: bytes, *, language: Optional[str] = None) -> VoiceToTextResult: ...

    async def text_to_voice(
        self,
        text: str,
        *,
        voice: Optional[str] = None,
        speed: Optional[float] = None,
        emotion: Optional[str] = None,
    ) -> TextToVoiceResult: ...


class MockSpeechBridge:
    """Picks a sample utterance from the audio digest, so the same bytes always give the same text."""

    SAMPLE_TEXTS = (
        "Забронируй корт на завтра в 14:00 на два часа",
        "Отмени мою бронь на завтра",
        "Покажи свободные корты на сегодня вечером",
        "Book a court for tomorrow at 2 PM",
        "จองคอร์ตพรุ่งนี้เวลา 14:00",
    )

    def __init__(self, base_url: str = "https://voice.local/audio"):
        self.base_url = base_url.rstrip("/")

    async def voice_to_text(self, audio: bytes, *, language: Optional[str] = None) -> VoiceToTextResult:
        if not audio:
            raise ValueError("Empty audio buffer provided")
        digest = hashlib.sha256(bytes(audio)).digest()
        text = self.SAMPLE_TEXTS[digest[0] % len(self.SAMPLE_TEXTS)]
        return VoiceToTextResult(
            text=text,
            confidence=round(0.85 + (digest[1] / 255) * 0.1, 3),
            language=language or detect_language(text),
            duration=round(len(audio) / 1024, 2),
        )

    async def text_to_voice(
        self,
        text: str,
        *,
        voice: Optional[str] = None,
        speed: Optional[float] = None,
        emotion: Optional[str] = None,
    ) -> TextToVoiceResult:
        if not text or not text.strip():
            raise ValueError("Empty text provided")
        key = hashlib.sha256(f"{voice}|{speed}|{emotion}|{text}".encode()).hexdigest()[:16]
        return TextToVoiceResult(
            audio_url=f"{self.base_url}/{key}.mp3",
            format="mp3",
            duration=math.ceil(len(text) / 10),
            size=len(text) * 50 + int((speed or 0) * 10),
        )


# emotion -> spoken delivery hint for the TTS model
_EMOTION_INSTRUCTIONS = {
    "excited": "Speak in an upbeat, cheerful tone.",
    "calm": "Speak in a calm, reassuring tone.",
    "neutral": None,
}


class OpenAISpeechBridge:
    def __init__(
        self,
        client: AsyncOpenAI,
        *,
        stt_model: str = "whisper-1",
        tts_model: str = "gpt-4o-mini-tts",
        voice: str = "ash",
        audio_dir: str = "temp/voice",
        public_base_url: Optional[str] = None,
    ):
        self.client = client
        self.stt_model = stt_model
        self.tts_model = tts_model
        self.voice = voice
        self.audio_dir = Path(audio_dir)
        self.public_base_url = (public_base_url or "").rstrip("/")

    async def voice_to_text(self, audio: bytes, *, language: Optional[str] = None) -> VoiceToTextResult:
        if not audio:
            raise ValueError("Empty audio buffer provided")
        buf = io.BytesIO(bytes(audio))
        buf.name = "voice.ogg"
        kwargs: Dict[str, Any] = {"model": self.stt_model, "file": buf, "response_format": "verbose_json"}
        if language:
            kwargs["language"] = language.split("-")[0]
        resp = await self.client.audio.transcriptions.create(**kwargs)
        text = (getattr(resp, "text", "") or "").strip()
        duration = float(getattr(resp, "duration", 0) or 0)
        return VoiceToTextResult(
            text=text,
            # Whisper does not report a confidence score
            confidence=0.9 if text else 0.0,
            language=language or detect_language(text),
            duration=duration,
        )

    async def text_to_voice(
        self,
        text: str,
        *,
        voice: Optional[str] = None,
        speed: Optional[float] = None,
        emotion: Optional[str] = None,
    ) -> TextToVoiceResult:
        if not text or not text.strip():
            raise ValueError("Empty text provided")
        kwargs: Dict[str, Any] = {
            "model": self.tts_model,
            "voice": voice or self.voice,
            "input": text,
            "response_format": "mp3",
        }
        if speed:
            kwargs["speed"] = speed
        instructions = _EMOTION_INSTRUCTIONS.get(emotion or "neutral")
        if instructions:
            kwargs["instructions"] = instructions
        resp = await self.client.audio.speech.create(**kwargs)
        data = resp.content

        await asyncio.to_thread(self.audio_dir.mkdir, parents=True, exist_ok=True)
        name = f"{uuid.uuid4().hex}.mp3"
        path = self.audio_dir / name
        await asyncio.to_thread(path.write_bytes, data)
        url = f"{self.public_base_url}/{name}" if self.public_base_url else path.resolve().as_uri()
        _log.debug("TTS wrote %s (%d bytes)", path, len(data))
        return TextToVoiceResult(
            audio_url=url,
            format="mp3",
            duration=math.ceil(len(text) / 10),
            size=len(data),
        )


def build_speech_bridge(cfg: Dict[str, Any], api_key: Optional[str]) -> SpeechBridge:
    """
    Build the speech bridge from `speech.*` config. Falls back to the mock
    when provider is "openai" but no API key is set.
    """
    provider = str(cfg_get(cfg, "speech.provider", "mock")).lower()
    base_url = cfg_get(cfg, "speech.public_base_url", None)

    if provider == "openai":
        if not api_key:
            _log.warning("OPENAI_API_KEY missing; speech falls back to the mock bridge.")
        else:
            _log.info("OpenAI speech key: %s", mask_key(api_key))
            return OpenAISpeechBridge(
                AsyncOpenAI(api_key=api_key),
                stt_model=cfg_get(cfg, "speech.stt_model", "whisper-1"),
                tts_model=cfg_get(cfg, "speech.tts_model", "gpt-4o-mini-tts"),
                voice=cfg_get(cfg, "speech.voice", "ash"),
                audio_dir=cfg_get(cfg, "speech.audio_dir", "temp/voice"),
                public_base_url=base_url,
            )
    elif provider != "mock":
        _log.warning("Unknown speech.provider %r; using the mock bridge.", provider)

    return MockSpeechBridge(base_url or "https://voice.local/audio")
