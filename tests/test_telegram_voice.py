# tests/test_telegram_voice.py
from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram.ext import MessageHandler

from common.models import BookingResult, VoiceCommand
from services.speech import VoiceToTextResult
from services.telegram_voice import (
    TelegramVoiceHandler,
    VoiceMessageProcessor,
    format_reply,
    register_voice_handler,
)


def _voice(duration=5, file_size=20_000):
    return SimpleNamespace(file_id="file-1", duration=duration, file_size=file_size)


def _bot(data=b"ogg"):
    tg_file = SimpleNamespace(download_as_bytearray=AsyncMock(return_value=bytearray(data)))
    return SimpleNamespace(get_file=AsyncMock(return_value=tg_file))


def _speech(text="Забронируй корт на завтра в 14:00", language="ru-RU"):
    speech = AsyncMock()
    speech.voice_to_text.return_value = VoiceToTextResult(text=text, confidence=0.9, language=language, duration=2.0)
    return speech


def _update(voice, user_id=42):
    message = SimpleNamespace(voice=voice, reply_text=AsyncMock())
    return SimpleNamespace(effective_message=message, effective_user=SimpleNamespace(id=user_id))


def _replies(update):
    return [c.args[0] for c in update.effective_message.reply_text.await_args_list]


# ----------------------------- processor -----------------------------

async def test_process_downloads_and_transcribes():
    bot, speech = _bot(b"voice-bytes"), _speech()
    out = await VoiceMessageProcessor(speech).process(bot, _voice(), language="ru-RU")

    assert out.success is True
    assert out.text == "Забронируй корт на завтра в 14:00"
    bot.get_file.assert_awaited_once_with("file-1")
    speech.voice_to_text.assert_awaited_once_with(b"voice-bytes", language="ru-RU")


@pytest.mark.parametrize(
    "voice,fragment",
    [
        (_voice(duration=45), "45"),
        (_voice(file_size=3 * 1024 * 1024), "3072KB"),
        (None, "не найдено"),
    ],
)
async def test_process_rejects_over_limit(voice, fragment):
    bot, speech = _bot(), _speech()
    out = await VoiceMessageProcessor(speech).process(bot, voice)

    assert out.success is False
    assert fragment in out.error
    bot.get_file.assert_not_awaited()
    speech.voice_to_text.assert_not_awaited()


async def test_process_blank_transcript():
    out = await VoiceMessageProcessor(_speech(text="  ")).process(_bot(), _voice(), locale="en-US")
    assert out.success is False
    assert out.error == "Could not recognize speech. Please try again."


async def test_process_download_failure():
    bot = SimpleNamespace(get_file=AsyncMock(side_effect=RuntimeError("telegram down")))
    out = await VoiceMessageProcessor(_speech()).process(bot, _voice())
    assert out.success is False
    assert "распознать" in out.error


# ----------------------------- reply text -----------------------------

def test_format_reply_success():
    text = format_reply(
        BookingResult(success=True, message="Корт забронирован", booking_id="b-1", next_steps=["Один", "Два"]),
        "ru-RU",
    )
    assert text.startswith("✅ Корт забронирован")
    assert "b-1" in text
    assert "1. Один\n2. Два" in text


def test_format_reply_failure():
    assert format_reply(BookingResult(success=False, message="Пользователь не найден")) == "❌ Пользователь не найден"


# ----------------------------- handler -----------------------------

async def test_handler_books_from_voice(fake_service):
    handler = TelegramVoiceHandler(VoiceMessageProcessor(_speech()), AsyncMock(return_value=fake_service))
    update = _update(_voice())

    await handler.handle_voice_message(update, SimpleNamespace(bot=_bot()))

    replies = _replies(update)
    assert replies[0].startswith("🎤")
    assert replies[-1].startswith("✅")
    assert "booking-123" in replies[-1]
    command, user_id = fake_service.process_voice_booking.await_args.args
    assert isinstance(command, VoiceCommand)
    assert user_id == "42"
    assert fake_service.process_voice_booking.await_args.kwargs == {"locale": "ru-RU"}


async def test_handler_replies_in_recognized_language(fake_service):
    handler = TelegramVoiceHandler(
        VoiceMessageProcessor(_speech(text="Book a court for tomorrow at 2 PM", language="en-US")),
        AsyncMock(return_value=fake_service),
    )
    update = _update(_voice())

    await handler.handle_voice_message(update, SimpleNamespace(bot=_bot()))

    assert fake_service.process_voice_booking.await_args.kwargs == {"locale": "en-US"}


async def test_handler_voice_too_long(fake_service):
    handler = TelegramVoiceHandler(VoiceMessageProcessor(_speech()), AsyncMock(return_value=fake_service))
    update = _update(_voice(duration=60))

    await handler.handle_voice_message(update, SimpleNamespace(bot=_bot()))

    assert _replies(update)[-1].startswith("❌")
    fake_service.process_voice_booking.assert_not_awaited()


async def test_handler_unrecognized_command(fake_service):
    handler = TelegramVoiceHandler(
        VoiceMessageProcessor(_speech(text="Какая сегодня погода?")), AsyncMock(return_value=fake_service),
    )
    update = _update(_voice())

    await handler.handle_voice_message(update, SimpleNamespace(bot=_bot()))

    assert "Какая сегодня погода?" in _replies(update)[-1]
    fake_service.process_voice_booking.assert_not_awaited()


async def test_handler_service_failure_is_reported():
    handler = TelegramVoiceHandler(
        VoiceMessageProcessor(_speech()), AsyncMock(side_effect=RuntimeError("db down")),
    )
    update = _update(_voice())

    await handler.handle_voice_message(update, SimpleNamespace(bot=_bot()))

    assert _replies(update)[-1] == "Произошла ошибка при обработке голосового сообщения. Попробуйте позже."


async def test_handler_ignores_updates_without_message(fake_service):
    handler = TelegramVoiceHandler(VoiceMessageProcessor(_speech()), AsyncMock(return_value=fake_service))
    update = SimpleNamespace(effective_message=None, effective_user=None)

    await handler.handle_voice_message(update, SimpleNamespace(bot=_bot()))

    fake_service.process_voice_booking.assert_not_awaited()


def test_register_voice_handler():
    app = MagicMock()
    handler = TelegramVoiceHandler(VoiceMessageProcessor(_speech()), AsyncMock())

    register_voice_handler(app, handler)

    (registered,), _ = app.add_handler.call_args
    assert isinstance(registered, MessageHandler)
    assert registered.callback == handler.handle_voice_message


async def test_handler_resolves_relative_dates_on_venue_calendar(fake_service):
    handler = TelegramVoiceHandler(
        VoiceMessageProcessor(_speech(text="Забронируй корт на завтра в 14:00")),
        AsyncMock(return_value=fake_service),
        timezone="Asia/Bangkok",
        today=lambda: date(2024, 12, 28),
    )
    update = _update(_voice())

    await handler.handle_voice_message(update, SimpleNamespace(bot=_bot()))

    command, _ = fake_service.process_voice_booking.await_args.args
    assert command.date == date(2024, 12, 29)


def test_container_hands_venue_timezone_to_telegram_handler():
    from services.container import ServiceContainer

    handler = ServiceContainer({"booking": {"timezone": "Asia/Bangkok"}}).telegram_handler()

    assert handler.timezone == "Asia/Bangkok"
    assert isinstance(handler.today(), date)
