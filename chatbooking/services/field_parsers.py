"""Deterministic extractors for booking fields typed into a chat message."""

import re
from datetime import date, timedelta
from typing import Sequence, TypeVar

DAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

MONTH_NAMES = {
    "january": 1,
    "february": 2,
    "march": 3,
    "april": 4,
    "may": 5,
    "june": 6,
    "july": 7,
    "august": 8,
    "september": 9,
    "october": 10,
    "november": 11,
    "december": 12,
}

_WEEKDAY_RE = re.compile(r"\b(next\s+)?(" + "|".join(DAY_NAMES) + r")\b")
_MONTH_DAY_RE = re.compile(
    r"\b(" + "|".join(MONTH_NAMES) + r")\s+(\d{1,2})(?:st|nd|rd|th)?\b(?:,?\s*(\d{4})\b)?"
)
_ISO_DATE_RE = re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b")
_DMY_DATE_RE = re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{4})\b")
_CLOCK_RE = re.compile(r"\b\d{1,2}:\d{2}\b")

_TIME_PATTERNS = [
    re.compile(r"\b(\d{1,2}):(\d{2})\s*(am|pm)\b"),
    re.compile(r"\b(\d{1,2}):(\d{2})\b"),
    re.compile(r"\b(\d{1,2})\s*(am|pm)\b"),
]

_NAME_WORDS = r"[A-Z][a-z'\-]+(?:\s+[A-Z][a-z'\-]+)*"
_NAME_RE = re.compile(r"\b(?i:my name is|i'm|i am|call me|this is)\s+(" + _NAME_WORDS + ")")
_BARE_NAME_RE = re.compile(r"^\s*(" + _NAME_WORDS + r")\s*[.!]?\s*$")

# Capitalized words that start a date or an answer rather than a name
_NOT_NAME_WORDS = set(DAY_NAMES) | set(MONTH_NAMES) | {"available", "free", "here", "ready", "today", "tomorrow"}

_PHONE_RE = re.compile(r"(\+?\(?\d{1,4}\)?[\s-]?\(?\d{1,4}\)?[\s-]?\d{1,4}[\s-]?\d{1,4}[\s-]?\d{1,9})")
MIN_PHONE_DIGITS = 7

_AFFIRMATIVE_RE = re.compile(r"\b(yes|confirm|ok|sure|proceed)\b", re.IGNORECASE)
_SERVICE_NUMBER_RE = re.compile(r"^\s*(?:option|number|no\.?|#)?\s*(\d{1,2})\s*[.)]?\s*$", re.IGNORECASE)


def parse_date(text: str, reference_date: date) -> date | None:
    """
    Resolve a date mentioned in text relative to reference_date.

    Understands today, tomorrow, next week, weekday names (next occurrence
    after today, with or without "next"), month name + day with an optional
    ordinal and year, D/M/YYYY and YYYY-MM-DD. Month-day without a year
    that already passed this year rolls into next year.
    """
    if not text:
        return None
    normalized = text.lower().strip()

    match = _ISO_DATE_RE.search(normalized)
    if match:
        return _safe_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))

    match = _DMY_DATE_RE.search(normalized)
    if match:
        return _safe_date(int(match.group(3)), int(match.group(2)), int(match.group(1)))

    if re.search(r"\btoday\b", normalized):
        return reference_date
    if re.search(r"\btomorrow\b", normalized):
        return reference_date + timedelta(days=1)
    if re.search(r"\bnext\s+week\b", normalized):
        return reference_date + timedelta(days=7)

    match = _WEEKDAY_RE.search(normalized)
    if match:
        days_ahead = (DAY_NAMES.index(match.group(2)) - reference_date.weekday()) % 7
        return reference_date + timedelta(days=days_ahead or 7)

    match = _MONTH_DAY_RE.search(normalized)
    if match:
        month = MONTH_NAMES[match.group(1)]
        day = int(match.group(2))
        if match.group(3):
            return _safe_date(int(match.group(3)), month, day)
        candidate = _safe_date(reference_date.year, month, day)
        if candidate and candidate < reference_date:
            candidate = _safe_date(reference_date.year + 1, month, day)
        return candidate

    return None


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_time(text: str) -> tuple[int, int] | None:
    """Parse "H:MM am/pm", "H:MM" (24h) or "H am/pm". Returns (hour, minute) or None."""
    if not text:
        return None
    normalized = text.lower()

    for pattern in _TIME_PATTERNS:
        match = pattern.search(normalized)
        if not match:
            continue

        groups = match.groups()
        hour = int(groups[0])
        minute = int(groups[1]) if len(groups) == 3 or groups[1].isdigit() else 0
        am_pm = groups[-1] if groups[-1] in ("am", "pm") else None

        if am_pm:
            if not 1 <= hour <= 12:
                continue
            if am_pm == "pm" and hour != 12:
                hour += 12
            elif am_pm == "am" and hour == 12:
                hour = 0

        if 0 <= hour <= 23 and 0 <= minute <= 59:
            return (hour, minute)

    return None


def parse_name(text: str, bare: bool = False) -> str | None:
    """
    Pull a name that follows "my name is", "I'm", "I am", "call me" or "this is".

    The lead phrase is case-insensitive; the name itself must be one or more
    capitalized words. With bare=True a message made only of capitalized
    words is accepted as the name.
    """
    if not text:
        return None
    for match in _NAME_RE.finditer(text):
        name = _leading_name(match.group(1))
        if name:
            return name
    if bare:
        match = _BARE_NAME_RE.match(text)
        if match and len(match.group(1).split()) <= 4:
            return _leading_name(match.group(1))
    return None


def _leading_name(words: str) -> str | None:
    kept = []
    for word in words.split():
        if word.lower() in _NOT_NAME_WORDS:
            break
        kept.append(word)
    return " ".join(kept) or None


def parse_phone(text: str) -> str | None:
    """
    Find a phone-like digit group of at least seven digits. Whitespace is stripped.

    Dates and clock times are blanked out first so "2030-03-04" or
    "4/3/2030 10:30" never read as a number.
    """
    if not text:
        return None
    text = _ISO_DATE_RE.sub(" ", text)
    text = _DMY_DATE_RE.sub(" ", text)
    text = _CLOCK_RE.sub(" ", text)
    for match in _PHONE_RE.finditer(text):
        candidate = re.sub(r"\s+", "", match.group(1))
        if sum(ch.isdigit() for ch in candidate) >= MIN_PHONE_DIGITS:
            return candidate
    return None


def is_affirmative(text: str) -> bool:
    return bool(text and _AFFIRMATIVE_RE.search(text))


S = TypeVar("S")


def match_service(text: str, services: Sequence[S]) -> S | None:
    """
    Pick a service from a numbered list by its position ("2", "option 2")
    or by a case-insensitive name match.

    Services must expose a service_name attribute.
    """
    if not text or not services:
        return None

    match = _SERVICE_NUMBER_RE.match(text)
    if match:
        index = int(match.group(1)) - 1
        return services[index] if 0 <= index < len(services) else None

    wanted = text.lower().strip()
    for service in services:
        if service.service_name.lower() == wanted:
            return service

    # Longest names first so "Haircut & Color" wins over "Haircut"
    for service in sorted(services, key=lambda s: len(s.service_name), reverse=True):
        if re.search(r"\b" + re.escape(service.service_name.lower()) + r"\b", wanted):
            return service

    if len(wanted) >= 3:
        candidates = [s for s in services if wanted in s.service_name.lower()]
        if len(candidates) == 1:
            return candidates[0]

    return None
