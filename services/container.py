# services/container.py
"""
Composition root: owns config, the database engine, the speech bridge and the
single VoiceBookingService instance (built lazily on first use).
"""
from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from common.config_loader import cfg_get, load_config, load_env_files
from common.logging_config import configure_logging
from services.booking_service import BookingServiceConfig, VoiceBookingService
from services.speech import SpeechBridge, build_speech_bridge

logger = logging.getLogger("voice-booking")


class ServiceContainer:
    def __init__(
        self,
        cfg: Optional[Dict[str, Any]] = None,
        *,
        engine: Optional[AsyncEngine] = None,
        speech: Optional[SpeechBridge] = None,
        booking_service: Optional[VoiceBookingService] = None,
    ):
        self.cfg = cfg if cfg is not None else {}
        self.booking_config = BookingServiceConfig.from_config(self.cfg)
        self._engine = engine
        self._speech = speech
        self._booking_service = booking_service
        self._lock = asyncio.Lock()

    @classmethod
    def from_env(cls, config_path: Optional[str] = None) -> "ServiceContainer":
        load_env_files()
        configure_logging()
        return cls(load_config(config_path))

    @property
    def speech(self) -> SpeechBridge:
        if self._speech is None:
            self._speech = build_speech_bridge(self.cfg, os.getenv("OPENAI_API_KEY"))
        return self._speech

    async def get_booking_service(self) -> VoiceBookingService:
        if self._booking_service is not None:
            return self._booking_service
        async with self._lock:
            if self._booking_service is None:
                self._booking_service = await self._build_booking_service()
        return self._booking_service

    async def _build_booking_service(self) -> VoiceBookingService:
        # imported here so that tools/tests with an injected service never touch the DB layer
        from db.models import init_db
        from db.repositories import SqlBookingRepository, SqlCourtRepository, SqlUserRepository
        from db.session import engine as default_engine, make_session_factory

        if self._engine is None:
            self._engine = default_engine
        if cfg_get(self.cfg, "database.create_tables", True):
            await init_db(self._engine)
        sessions = make_session_factory(self._engine)
        logger.info(
            "VoiceBookingService ready (duration=%s min, price=%s %s/h, tz=%s)",
            self.booking_config.default_duration_min,
            self.booking_config.price_per_hour,
            self.booking_config.currency,
            self.booking_config.timezone,
        )
        return VoiceBookingService(
            SqlBookingRepository(sessions),
            SqlCourtRepository(sessions),
            SqlUserRepository(sessions),
            self.booking_config,
        )

    def voice_tools(self):
        from tools.voice_tools import VoiceTools

        return VoiceTools(self.get_booking_service, self.speech, timezone=self.booking_config.timezone)

    def telegram_handler(self):
        from services.telegram_voice import TelegramVoiceHandler, VoiceMessageProcessor

        processor = VoiceMessageProcessor(
            self.speech,
            max_duration_s=int(cfg_get(self.cfg, "telegram.max_voice_duration_s", 30)),
            max_file_size=int(cfg_get(self.cfg, "telegram.max_voice_file_size", 1024 * 1024)),
        )
        return TelegramVoiceHandler(
            processor,
            self.get_booking_service,
            locale=self.booking_config.locale,
            timezone=self.booking_config.timezone,
        )

    async def aclose(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
