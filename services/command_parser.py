"""
Voice command parser
--------------------
Turns a free-text utterance (ru-RU / en-US / th-TH) into a VoiceCommand.

Exports:
  - parse_voice_command(text, today=None) -> VoiceCommand | None
  - detect_language(text) -> "ru-RU" | "th-TH" | "en-US"

Pure and deterministic for a given `today`: no I/O, no clock reads when
`today` is passed. Unrecognized text returns None (not an error).
"""
from __future__ import annotations

import re
from datetime import date, time, timedelta
from typing import Optional

from common.models import CommandKind, VoiceCommand

# --------------- Intent keywords ---------------
# checked in this order: cancel wins over book ("cancel my court booking"),
# book wins over availability ("book a court if one is free")
_CANCEL_RE = re.compile(r"отмен|\bcancel|ยกเลิก")
_BOOK_RE = re.compile(r"заброни|\bбронируй|\bзакажи|зарезерв|\bbook(?:ing|ed)?\b|\breserve\b|จอง")
_CHECK_RE = re.compile(
    r"покажи|показать|свободн|доступн|есть ли|\bcheck\b|\bavailab|\bfree\b|\bshow\b|ว่าง|ดู"
)

_INTENTS = (
    (_CANCEL_RE, CommandKind.cancel_booking),
    (_BOOK_RE, CommandKind.book_court),
    (_CHECK_RE, CommandKind.check_availability),
)

# --------------- Dates ---------------
_ISO_DATE_RE = re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b")

_RELATIVE_DAYS = (
    (re.compile(r"послезавтра|day after tomorrow|มะรืน"), 2),
    (re.compile(r"завтра|tomorrow|พรุ่งนี้"), 1),
    (re.compile(r"сегодня|today|tonight|วันนี้"), 0),
)

_WEEKDAYS = (
    (re.compile(r"понедельник|\bmonday"), 0),
    (re.compile(r"вторник|\btuesday"), 1),
    (re.compile(r"\bсред[ауы]\b|\bwednesday"), 2),
    (re.compile(r"четверг|\bthursday"), 3),
    (re.compile(r"пятниц|\bfriday"), 4),
    (re.compile(r"суббот|\bsaturday"), 5),
    (re.compile(r"воскресень|\bsunday"), 6),
)

_RU_MONTHS = {
    "января": 1, "февраля": 2, "марта": 3, "апреля": 4, "мая": 5, "июня": 6,
    "июля": 7, "августа": 8, "сентября": 9, "октября": 10, "ноября": 11, "декабря": 12,
}
_EN_MONTHS = {
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11, "december": 12,
}
_RU_DAY_MONTH_RE = re.compile(r"\b(\d{1,2})\s+(" + "|".join(_RU_MONTHS) + r")\b")
_EN_DAY_MONTH_RE = re.compile(r"\b(\d{1,2})(?:st|nd|rd|th)?\s+(?:of\s+)?(" + "|".join(_EN_MONTHS) + r")\b")
_EN_MONTH_DAY_RE = re.compile(r"\b(" + "|".join(_EN_MONTHS) + r")\s+(\d{1,2})(?:st|nd|rd|th)?\b")

# --------------- Times ---------------
_AMPM_RE = re.compile(r"\b(\d{1,2})(?::(\d{2}))?\s*(a\.?m\.?|p\.?m\.?)(?!\w)")
_HHMM_RE = re.compile(r"\b(\d{1,2}):(\d{2})\b")
_RU_DAYPART_RE = re.compile(r"\b(\d{1,2})\s*(?:час\w*\s+)?(утра|дня|вечера|ночи)\b")
_RU_HOURS_RE = re.compile(r"\bв\s+(\d{1,2})\s*(?:час|ч\b)")
_EN_AT_RE = re.compile(r"\bat\s+(\d{1,2})\b(?!\s*(?::|hour|min))")

# --------------- Durations ---------------
_DUR_HALF_RE = re.compile(r"полтора|1[.,]5\s*(?:час|hour|h\b)|an hour and a half|one and a half hour")
_DUR_MINUTES_RE = re.compile(r"(?:\bна|\bfor)\s+(\d+)\s*(?:минут|min)")
_DUR_HOURS_RE = re.compile(r"(?:\bна|\bfor)\s+(\d+(?:[.,]\d+)?)\s*(?:час|hour|hr|h\b)")
_DUR_WORD_RE = re.compile(r"(?:\bна|\bfor)\s+(один|одну|два|две|три|one|two|three|an|a)\s+(?:час|hour)")
_DUR_ONE_HOUR_RE = re.compile(r"(?:\bна|\bfor)\s+час\b")
_DUR_THAI_RE = re.compile(r"(\d+)\s*ชั่วโมง")
_NUMBER_WORDS = {
    "один": 1, "одну": 1, "два": 2, "две": 2, "три": 3,
    "one": 1, "two": 2, "three": 3, "an": 1, "a": 1,
}
MAX_DURATION_MIN = 12 * 60

# --------------- Court type / players ---------------
_COURT_TYPES = (
    (re.compile(r"открыт|улич|outdoor|outside|กลางแจ้ง"), "outdoor"),
    (re.compile(r"внутренн|крыт|indoor|covered|ในร่ม"), "indoor"),
    (re.compile(r"падел|padel|paddle|พาเดล"), "paddle"),
    (re.compile(r"теннис|tennis|เทนนิส"), "tennis"),
)
_PLAYERS_RE = re.compile(r"(\d+)\s*(?:игрок|человек|player|people|คน)")

_RU_SCRIPT_RE = re.compile(r"[а-яё]", re.IGNORECASE)
_THAI_SCRIPT_RE = re.compile(r"[ก-๙]")


def detect_language(text: str) -> str:
    if _RU_SCRIPT_RE.search(text or ""):
        return "ru-RU"
    if _THAI_SCRIPT_RE.search(text or ""):
        return "th-TH"
    return "en-US"


def _detect_intent(s: str) -> Optional[CommandKind]:
    for pattern, kind in _INTENTS:
        if pattern.search(s):
            return kind
    return None


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _upcoming(today: date, month: int, day: int) -> Optional[date]:
    """Day/month without a year: this year, or next year if already past."""
    d = _safe_date(today.year, month, day)
    if d is not None and d < today:
        d = _safe_date(today.year + 1, month, day)
    return d


def _extract_date(s: str, today: date) -> Optional[date]:
    m = _ISO_DATE_RE.search(s)
    if m:
        d = _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        if d:
            return d

    m = _RU_DAY_MONTH_RE.search(s)
    if m:
        d = _upcoming(today, _RU_MONTHS[m.group(2)], int(m.group(1)))
        if d:
            return d
    m = _EN_DAY_MONTH_RE.search(s)
    if m:
        d = _upcoming(today, _EN_MONTHS[m.group(2)], int(m.group(1)))
        if d:
            return d
    m = _EN_MONTH_DAY_RE.search(s)
    if m:
        d = _upcoming(today, _EN_MONTHS[m.group(1)], int(m.group(2)))
        if d:
            return d

    for pattern, offset in _RELATIVE_DAYS:
        if pattern.search(s):
            return today + timedelta(days=offset)

    # a spoken weekday means the next one; the same weekday means a week ahead
    for pattern, weekday in _WEEKDAYS:
        if pattern.search(s):
            ahead = (weekday - today.weekday()) % 7 or 7
            return today + timedelta(days=ahead)

    return None


def _clock(hour: int, minute: int = 0) -> Optional[time]:
    if 0 <= hour <= 23 and 0 <= minute <= 59:
        return time(hour, minute)
    return None


def _extract_time(s: str) -> Optional[time]:
    m = _AMPM_RE.search(s)
    if m:
        hour, minute = int(m.group(1)), int(m.group(2) or 0)
        pm = m.group(3).startswith("p")
        if hour <= 12:
            if pm and hour < 12:
                hour += 12
            elif not pm and hour == 12:
                hour = 0
            t = _clock(hour, minute)
            if t:
                return t

    m = _HHMM_RE.search(s)
    if m:
        t = _clock(int(m.group(1)), int(m.group(2)))
        if t:
            return t

    m = _RU_DAYPART_RE.search(s)
    if m:
        hour, part = int(m.group(1)), m.group(2)
        if part in ("дня", "вечера") and hour < 12:
            hour += 12
        elif part in ("утра", "ночи") and hour == 12:
            hour = 0
        t = _clock(hour)
        if t:
            return t

    for pattern in (_RU_HOURS_RE, _EN_AT_RE):
        m = pattern.search(s)
        if m:
            t = _clock(int(m.group(1)))
            if t:
                return t

    return None


def _minutes(value: float) -> Optional[int]:
    minutes = int(round(value))
    return minutes if 0 < minutes <= MAX_DURATION_MIN else None


def _extract_duration(s: str) -> Optional[int]:
    if _DUR_HALF_RE.search(s):
        return 90
    m = _DUR_MINUTES_RE.search(s)
    if m:
        return _minutes(int(m.group(1)))
    m = _DUR_HOURS_RE.search(s)
    if m:
        return _minutes(float(m.group(1).replace(",", ".")) * 60)
    m = _DUR_WORD_RE.search(s)
    if m:
        return _minutes(_NUMBER_WORDS[m.group(1)] * 60)
    if _DUR_ONE_HOUR_RE.search(s):
        return 60
    m = _DUR_THAI_RE.search(s)
    if m:
        return _minutes(int(m.group(1)) * 60)
    return None


def _extract_court_type(s: str) -> Optional[str]:
    for pattern, court_type in _COURT_TYPES:
        if pattern.search(s):
            return court_type
    return None


def _extract_player_count(s: str) -> Optional[int]:
    m = _PLAYERS_RE.search(s)
    if not m:
        return None
    n = int(m.group(1))
    return n if n > 0 else None


def parse_voice_command(text: str, *, today: Optional[date] = None) -> Optional[VoiceCommand]:
    """
    Recognize one of book_court / check_availability / cancel_booking.
    The date defaults to `today` when none is spoken (date_explicit=False);
    the time stays None when none is spoken.
    """
    if not text or not text.strip():
        return None

    s = text.lower().strip()
    kind = _detect_intent(s)
    if kind is None:
        return None

    today = today or date.today()
    spoken_date = _extract_date(s, today)
    day = spoken_date or today

    if kind is CommandKind.cancel_booking:
        return VoiceCommand(command=kind, date=day, date_explicit=spoken_date is not None)

    return VoiceCommand(
        command=kind,
        date=day,
        time=_extract_time(s),
        duration=_extract_duration(s),
        court_type=_extract_court_type(s),
        player_count=_extract_player_count(s) if kind is CommandKind.book_court else None,
        date_explicit=spoken_date is not None,
    )
