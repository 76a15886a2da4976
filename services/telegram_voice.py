"""
Telegram voice intake
---------------------
Voice message -> download -> transcription -> command -> booking -> reply.

  - VoiceMessageProcessor: size/duration limits, download via the bot API,
    transcription via the SpeechBridge.
  - TelegramVoiceHandler: python-telegram-bot handler for voice messages.
  - format_reply(result, locale): the text sent back to the chat.
  - register_voice_handler(application, handler)
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Optional

from telegram import Update
from telegram.ext import ContextTypes, MessageHandler, filters

from common.messages import msg, resolve_locale
from common.models import BookingResult
from common.utils import _zone
from services.booking_service import VoiceBookingService
from services.command_parser import parse_voice_command
from services.speech import SpeechBridge

logger = logging.getLogger("voice-booking")

MAX_VOICE_DURATION_S = 30
MAX_VOICE_FILE_SIZE = 1024 * 1024


@dataclass
class VoiceProcessResult:
    success: bool
    text: Optional[str] = None
    error: Optional[str] = None
    confidence: Optional[float] = None
    language: Optional[str] = None


class VoiceMessageProcessor:
    def __init__(
        self,
        speech: SpeechBridge,
        *,
        max_duration_s: int = MAX_VOICE_DURATION_S,
        max_file_size: int = MAX_VOICE_FILE_SIZE,
    ):
        self.speech = speech
        self.max_duration_s = max_duration_s
        self.max_file_size = max_file_size

    def validate(self, voice: Any, locale: Optional[str] = None) -> Optional[str]:
        """Return a user-facing error for a voice message over the limits, else None."""
        if voice is None:
            return msg("voice_missing", locale)
        duration = int(getattr(voice, "duration", 0) or 0)
        if duration > self.max_duration_s:
            return msg("voice_too_long", locale, duration=duration, max_duration=self.max_duration_s)
        size = getattr(voice, "file_size", None)
        if size and size > self.max_file_size:
            return msg(
                "voice_too_large", locale,
                size_kb=round(size / 1024), max_kb=round(self.max_file_size / 1024),
            )
        return None

    async def process(
        self,
        bot: Any,
        voice: Any,
        *,
        language: Optional[str] = None,
        locale: Optional[str] = None,
    ) -> VoiceProcessResult:
        error = self.validate(voice, locale)
        if error:
            return VoiceProcessResult(success=False, error=error)

        try:
            tg_file = await bot.get_file(voice.file_id)
            data = await tg_file.download_as_bytearray()
            stt = await self.speech.voice_to_text(bytes(data), language=language)
        except Exception as e:
            logger.warning("voice processing failed for file %s: %s", getattr(voice, "file_id", "?"), e)
            return VoiceProcessResult(success=False, error=msg("voice_not_recognized", locale))

        if not stt.text or not stt.text.strip():
            return VoiceProcessResult(success=False, error=msg("voice_not_recognized", locale))

        return VoiceProcessResult(
            success=True,
            text=stt.text.strip(),
            confidence=stt.confidence,
            language=stt.language,
        )


def format_reply(result: BookingResult, locale: Optional[str] = None) -> str:
    if not result.success:
        return f"❌ {result.message}"

    parts = [f"✅ {result.message}"]
    if result.booking_id:
        parts.append(msg("reply_booking_id", locale, booking_id=result.booking_id))
    if result.next_steps:
        steps = "\n".join(f"{i}. {step}" for i, step in enumerate(result.next_steps, start=1))
        parts.append(f"{msg('reply_next_steps', locale)}\n{steps}")
    return "\n\n".join(parts)


class TelegramVoiceHandler:
    def __init__(
        self,
        processor: VoiceMessageProcessor,
        get_service: Callable[[], Awaitable[VoiceBookingService]],
        *,
        language: Optional[str] = None,
        locale: Optional[str] = None,
        timezone: str = "UTC",
        today: Optional[Callable[[], date]] = None,
    ):
        self.processor = processor
        self.get_service = get_service
        self.language = language
        self.locale = resolve_locale(locale)
        self.timezone = timezone
        # relative dates ("tomorrow") are resolved on the venue calendar
        self.today = today or (lambda: datetime.now(_zone(self.timezone)).date())

    async def handle_voice_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.effective_message
        if message is None:
            return
        user = update.effective_user
        user_id = str(user.id) if user else "unknown"
        loc = self.locale

        try:
            logger.info("voice message from user=%s duration=%s", user_id, getattr(message.voice, "duration", None))
            await message.reply_text(msg("voice_processing", loc))

            voice = await self.processor.process(context.bot, message.voice, language=self.language, locale=loc)
            if not voice.success:
                await message.reply_text(f"❌ {voice.error}")
                return

            if voice.language:
                loc = resolve_locale(voice.language)
            logger.info("voice recognized user=%s text=%r", user_id, voice.text)

            command = parse_voice_command(voice.text, today=self.today())
            if command is None:
                await message.reply_text(msg("command_not_understood", loc, text=voice.text))
                return

            service = await self.get_service()
            result = await service.process_voice_booking(command, user_id, locale=loc)
            await message.reply_text(format_reply(result, loc))
        except Exception:
            logger.exception("voice message handling failed for user=%s", user_id)
            await message.reply_text(msg("voice_failed", loc))


def register_voice_handler(application: Any, handler: TelegramVoiceHandler) -> None:
    application.add_handler(MessageHandler(filters.VOICE, handler.handle_voice_message))


def main() -> None:
    """Run a polling bot that answers voice messages: `python -m services.telegram_voice`."""
    import os

    from telegram.ext import Application

    from services.container import ServiceContainer

    container = ServiceContainer.from_env()
    token = os.getenv("TELEGRAM_BOT_TOKEN")
    if not token:
        raise RuntimeError("TELEGRAM_BOT_TOKEN is not set")

    app = Application.builder().token(token).build()
    register_voice_handler(app, container.telegram_handler())
    logger.info("Telegram voice bot polling")
    app.run_polling()


if __name__ == "__main__":
    main()
