"""
Date Phrase Resolver

Pulls a calendar date out of free-form chat text without an NLP library.

Resolution order, first match wins:
1. "tomorrow" (and its common misspellings)
2. ISO dates (YYYY-MM-DD)
3. Month-name then day ("dec 16", "december 16th, 2025")
4. Day then month-name ("16 dec", "16th of december 2025")
"""
import re
from datetime import datetime, timedelta
from typing import NamedTuple, Optional


class ResolvedDate(NamedTuple):
    """
    A year/month/day triple.

    ISO matches are passed through unvalidated, so this is not always a
    real calendar date; callers that need one must check.
    """
    year: int
    month: int
    day: int

    def isoformat(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"


TOMORROW_TOKENS = (
    "tomorrow",
    "tmr",
    "tmrw",
    "tmrow",
    "tomorow",
    "tommorow",
    "tommorrow",
    "tomorroww",
    "2moro",
    "2morrow",
)

MONTHS = {
    "jan": 1, "january": 1,
    "feb": 2, "february": 2,
    "mar": 3, "march": 3,
    "apr": 4, "april": 4,
    "may": 5,
    "jun": 6, "june": 6,
    "jul": 7, "july": 7,
    "aug": 8, "august": 8,
    "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}

MONTH_PATTERN = (
    r"(jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|jun(?:e)?|jul(?:y)?"
    r"|aug(?:ust)?|sep(?:tember|t)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
)

TOMORROW_RE = re.compile(r"\b(?:" + "|".join(TOMORROW_TOKENS) + r")\b")
ISO_DATE_RE = re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b")
MONTH_DAY_RE = re.compile(
    rf"\b{MONTH_PATTERN}\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?\b(?:,?\s+(\d{{4}})\b)?"
)
DAY_MONTH_RE = re.compile(
    rf"\b(\d{{1,2}})(?:st|nd|rd|th)?\s+(?:of\s+)?{MONTH_PATTERN}\b\.?(?:,?\s+(\d{{4}})\b)?"
)
ON_THE_DAY_RE = re.compile(r"\bon\s+the\s+(\d{1,2})(?:st|nd|rd|th)?\b")
BARE_DAY_RE = re.compile(r"\b(\d{1,2})(?:st|nd|rd|th)?\b")

# A month/day without a year that lands further back than this is next year's
ROLLOVER_WINDOW = timedelta(hours=24)


def _month_day(month_name: str, day_str: str, year_str: Optional[str], now: datetime) -> Optional[ResolvedDate]:
    month = MONTHS.get(month_name)
    day = int(day_str)
    if month is None or not 1 <= day <= 31:
        return None

    if year_str:
        year = int(year_str)
    else:
        year = now.year
        try:
            candidate = datetime(year, month, day, tzinfo=now.tzinfo)
        except ValueError:
            return None
        if candidate < now - ROLLOVER_WINDOW:
            year += 1

    try:
        datetime(year, month, day)
    except ValueError:
        # e.g. "feb 30", or "feb 29" rolled into a non-leap year
        return None
    return ResolvedDate(year, month, day)


def resolve_tomorrow(text: str, now: datetime) -> Optional[ResolvedDate]:
    if not TOMORROW_RE.search(text):
        return None
    d = (now + timedelta(days=1)).date()
    return ResolvedDate(d.year, d.month, d.day)


def resolve_iso(text: str) -> Optional[ResolvedDate]:
    m = ISO_DATE_RE.search(text)
    if not m:
        return None
    # Components are not range-checked
    return ResolvedDate(int(m.group(1)), int(m.group(2)), int(m.group(3)))


def resolve_month_first(text: str, now: datetime) -> Optional[ResolvedDate]:
    for m in MONTH_DAY_RE.finditer(text):
        resolved = _month_day(m.group(1), m.group(2), m.group(3), now)
        if resolved:
            return resolved
    return None


def resolve_day_first(text: str, now: datetime) -> Optional[ResolvedDate]:
    for m in DAY_MONTH_RE.finditer(text):
        resolved = _month_day(m.group(2), m.group(1), m.group(3), now)
        if resolved:
            return resolved
    return None


def resolve_date(text: str, now: datetime) -> Optional[ResolvedDate]:
    """
    Resolve the first date phrase in `text` relative to `now`.

    Returns None when nothing date-like is found; never raises.
    """
    if not text:
        return None
    lower = text.lower()
    return (
        resolve_tomorrow(lower, now)
        or resolve_iso(lower)
        or resolve_month_first(lower, now)
        or resolve_day_first(lower, now)
    )


def infer_day_of_month(text: str) -> Optional[int]:
    """
    Find a bare day number in a message ("move it to the 18th").

    Prefers an explicit "on the Nth" phrase, else the first 1-2 digit
    number. Returns None when there is no plausible day (1-31).
    """
    lower = (text or "").lower()
    m = ON_THE_DAY_RE.search(lower) or BARE_DAY_RE.search(lower)
    if not m:
        return None
    day = int(m.group(1))
    return day if 1 <= day <= 31 else None
