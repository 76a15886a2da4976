"""
User-facing strings for the voice booking flow.

Keys are flat and shared across locales. A missing key falls back to the
default locale; a missing parameter leaves the template untouched.
"""
from __future__ import annotations

from typing import Any, Dict, List

DEFAULT_LOCALE = "ru-RU"
SUPPORTED_LOCALES = ("ru-RU", "en-US", "th-TH")

# th-TH has no dedicated strings yet and reads en-US
_FALLBACKS = {"th-TH": "en-US"}

MESSAGES: Dict[str, Dict[str, Any]] = {
    "ru-RU": {
        "user_not_found": "Пользователь не найден",
        "date_time_required": "Ошибка: укажите дату и время бронирования",
        "no_courts": "Нет доступных кортов",
        "no_free_courts_at_time": "Нет доступных кортов на указанное время",
        "booked": "Корт {court} успешно забронирован на {date} в {time}",
        "booked_steps": [
            "Приходите за 15 минут до начала игры",
            "Оплата: {amount} {currency}",
            "Можете отменить за 2 часа до игры",
        ],
        "slots_header": "Доступные слоты на {date}:",
        "slots_at_time_header": "Свободные корты на {date} в {time}:",
        "no_slots": "На указанную дату нет свободных кортов",
        "availability_steps": [
            "Скажите время, чтобы забронировать корт",
        ],
        "no_active_bookings": "У вас нет активных бронирований для отмены",
        "no_bookings_on_date": "На {date} у вас нет активных бронирований",
        "cancelled": "Бронирование на {date} в {time} успешно отменено. Возврат средств в течение 24 часов.",
        "cancelled_steps": [
            "Возврат средств поступит в течение 24 часов",
            "Можете забронировать другое время голосом",
        ],
        "unknown_command": "Неизвестная команда",
        "processing_error": "Ошибка обработки команды. Попробуйте позже.",
        "voice_missing": "Голосовое сообщение не найдено",
        "voice_too_long": "Голосовое сообщение слишком длинное ({duration}с). Максимум {max_duration}с.",
        "voice_too_large": "Файл слишком большой ({size_kb}KB). Максимум {max_kb}KB.",
        "voice_not_recognized": "Не удалось распознать речь. Попробуйте еще раз.",
        "voice_processing": "🎤 Обрабатываю голосовое сообщение...",
        "voice_failed": "Произошла ошибка при обработке голосового сообщения. Попробуйте позже.",
        "command_not_understood": (
            "❓ Не удалось понять команду: \"{text}\"\n\n"
            "Попробуйте сказать:\n"
            "• Забронируй корт на завтра в 14:00\n"
            "• Покажи свободные корты\n"
            "• Отмени мою бронь"
        ),
        "reply_booking_id": "📋 ID бронирования: {booking_id}",
        "reply_next_steps": "📝 Следующие шаги:",
        "suggestion": "Попробуйте сказать: 'Забронируй корт на завтра в 14:00'",
    },
    "en-US": {
        "user_not_found": "User not found",
        "date_time_required": "Error: please specify the booking date and time",
        "no_courts": "No courts available",
        "no_free_courts_at_time": "No courts are available at the requested time",
        "booked": "Court {court} successfully booked for {date} at {time}",
        "booked_steps": [
            "Arrive 15 minutes before your game",
            "Payment: {amount} {currency}",
            "You can cancel up to 2 hours before the game",
        ],
        "slots_header": "Available slots on {date}:",
        "slots_at_time_header": "Courts free on {date} at {time}:",
        "no_slots": "There are no free courts on that date",
        "availability_steps": [
            "Say a time to book a court",
        ],
        "no_active_bookings": "You have no active bookings to cancel",
        "no_bookings_on_date": "You have no active bookings on {date}",
        "cancelled": "Booking on {date} at {time} successfully cancelled. Refund within 24 hours.",
        "cancelled_steps": [
            "The refund arrives within 24 hours",
            "You can book another time by voice",
        ],
        "unknown_command": "Unknown command",
        "processing_error": "Could not process the command. Please try again later.",
        "voice_missing": "Voice message not found",
        "voice_too_long": "Voice message is too long ({duration}s). Maximum is {max_duration}s.",
        "voice_too_large": "File is too large ({size_kb}KB). Maximum is {max_kb}KB.",
        "voice_not_recognized": "Could not recognize speech. Please try again.",
        "voice_processing": "🎤 Processing your voice message...",
        "voice_failed": "Something went wrong while processing the voice message. Please try again later.",
        "command_not_understood": (
            "❓ Could not understand: \"{text}\"\n\n"
            "Try saying:\n"
            "• Book a court for tomorrow at 2 PM\n"
            "• Show available courts\n"
            "• Cancel my booking"
        ),
        "reply_booking_id": "📋 Booking ID: {booking_id}",
        "reply_next_steps": "📝 Next steps:",
        "suggestion": "Try saying: 'Book a court for tomorrow at 2 PM'",
    },
}


def resolve_locale(locale: str | None) -> str:
    if not locale:
        return DEFAULT_LOCALE
    if locale in MESSAGES:
        return locale
    return _FALLBACKS.get(locale, DEFAULT_LOCALE)


def _lookup(key: str, locale: str | None) -> Any:
    table = MESSAGES[resolve_locale(locale)]
    if key in table:
        return table[key]
    return MESSAGES[DEFAULT_LOCALE].get(key, f"[{key}]")


def _fill(template: str, params: Dict[str, Any]) -> str:
    if not params:
        return template
    try:
        return template.format(**params)
    except (KeyError, IndexError):
        return template


def msg(key: str, locale: str | None = None, **params: Any) -> str:
    """Translate `key` for `locale` with optional `{param}` substitution."""
    return _fill(str(_lookup(key, locale)), params)


def msg_list(key: str, locale: str | None = None, **params: Any) -> List[str]:
    value = _lookup(key, locale)
    if isinstance(value, str):
        return [_fill(value, params)]
    return [_fill(v, params) for v in value]
