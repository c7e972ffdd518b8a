"""
Calendar Autonomy

Lightweight chat-triggered calendar capture. Looks only at the raw
message: "add study for exam on dec 20" inserts an item, "move it to the
18th" re-dates the most recent one.

Anything ambiguous, or any database error, declines (handled=False) and
the normal chat reply takes over.
"""
import logging
import re
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.calendar_item import CalendarItem, DEFAULT_REMINDER_CHANNELS
from ..models.system_log import SystemLog, LogActor, LogEvent
from .dates import MONTH_PATTERN, TOMORROW_TOKENS, resolve_date, infer_day_of_month
from .intents import classify_intent
from ..tracer import trace_step, trace_result

logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 80

_TOMORROW = "|".join(TOMORROW_TOKENS)
# Start of something that reads like a date: "dec 20", "the 18th", "2025-12-20", "tomorrow"
_DATEISH = rf"(?:the\s+)?(?:\d{{1,4}}|{MONTH_PATTERN}\b|(?:{_TOMORROW}|today|tonight)\b)"

TITLE_RE = re.compile(
    rf"\b(?:add|put|schedule|remind(?: me)? to|learn|study)\s+(.+?)"
    rf"(?=\s+(?:on|for|by|at)\s+{_DATEISH}|\s+(?:{_TOMORROW})\b|$)",
    re.IGNORECASE,
)
TRAILING_TO_DATE_RE = re.compile(rf"\s+to\s+{_DATEISH}.*$", re.IGNORECASE)
TRAILING_CALENDAR_RE = re.compile(r"\s+(?:in|to|on|into)\s+(?:my\s+|the\s+)?calendar$", re.IGNORECASE)


class CalendarAutonomyResult(BaseModel):
    handled: bool = False
    reply: Optional[str] = None


def extract_title(message: str) -> str:
    """Best-effort title for a calendar item from the raw message."""
    text = message.strip()
    m = TITLE_RE.search(text)
    title = m.group(1).strip() if m else ""

    title = TRAILING_TO_DATE_RE.sub("", title)
    title = TRAILING_CALENDAR_RE.sub("", title)
    title = title.strip(" .,!?;:")

    return title or text[:TITLE_MAX_LENGTH]


def _with_day(existing: Optional[str], day: int, now: datetime) -> Optional[str]:
    """Keep the existing item's year and month, replace the day."""
    year, month = now.year, now.month
    if existing and len(existing) >= 7:
        try:
            year, month = int(existing[0:4]), int(existing[5:7])
        except ValueError:
            pass
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


class CalendarAutonomy:
    """Decides whether a chat message silently adds or moves a calendar item."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _latest_item(self, project_id: str) -> Optional[CalendarItem]:
        result = await self.db.execute(
            select(CalendarItem)
            .where(CalendarItem.project_id == project_id)
            .order_by(CalendarItem.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    def _log(self, project_id: str, item: CalendarItem, action: str) -> None:
        self.db.add(SystemLog(
            project_id=project_id,
            actor=LogActor.ZETA,
            event=LogEvent.CALENDAR_EVENT,
            message=f"Calendar item {action}: {item.title}",
            details={"action": action, "title": item.title, "date": item.date},
        ))

    async def maybe_autonomous_calendar_add(
        self,
        project_id: str,
        message: str,
        now: datetime,
    ) -> CalendarAutonomyResult:
        """
        Insert or re-date a calendar item if the message clearly asks for it.

        Modify intent wins over add intent. An add needs a resolvable date;
        a modify needs either a full date or a day-of-month.
        """
        intent = classify_intent(message)
        if not intent.wants_calendar_action:
            return CalendarAutonomyResult(handled=False)

        resolved = resolve_date(message, now)
        trace_step("calendar", f"add={intent.wants_add} modify={intent.wants_modify} date={resolved}")

        try:
            if intent.wants_modify:
                return await self._modify(project_id, message, now, resolved)
            return await self._add(project_id, message, resolved)
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning(f"Calendar autonomy failed for {project_id}: {e}")
            return CalendarAutonomyResult(handled=False)

    async def _modify(self, project_id, message, now, resolved) -> CalendarAutonomyResult:
        item = await self._latest_item(project_id)
        if item is None:
            return CalendarAutonomyResult(handled=False)

        if resolved is not None:
            new_date = resolved.isoformat()
        else:
            day = infer_day_of_month(message)
            if day is None:
                return CalendarAutonomyResult(handled=False)
            new_date = _with_day(item.date, day, now)
            if new_date is None:
                return CalendarAutonomyResult(handled=False)

        item.date = new_date
        item.notified = False
        self._log(project_id, item, "update")
        await self.db.commit()

        trace_result("calendar", "modify", True, new_date)
        logger.info(f"Moved calendar item {item.id} to {new_date}")
        return CalendarAutonomyResult(
            handled=True,
            reply=f"📅 Updated “{item.title}” to {new_date}.",
        )

    async def _add(self, project_id, message, resolved) -> CalendarAutonomyResult:
        if resolved is None:
            return CalendarAutonomyResult(handled=False)

        target_date = resolved.isoformat()
        title = extract_title(message)
        item = CalendarItem(
            project_id=project_id,
            type="task",
            title=title,
            date=target_date,
            time=None,
            length_minutes=None,
            details=message,
            reminder_offset_minutes=0,
            reminder_channels=dict(DEFAULT_REMINDER_CHANNELS),
        )
        self.db.add(item)
        self._log(project_id, item, "create")
        await self.db.commit()

        trace_result("calendar", "add", True, f"{title} @ {target_date}")
        logger.info(f"Added calendar item '{title}' on {target_date} for {project_id}")
        return CalendarAutonomyResult(
            handled=True,
            reply=f"📅 I've added “{title}” to your calendar for {target_date}.",
        )
