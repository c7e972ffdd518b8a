"""
Onboarding Status Engine

Tracks a project's progress through the four setup steps.

Status is an integer 0-4 (number of steps passed). It is derived from two
independent sources and the larger one wins:
- the project's own fields (vision text, goal lists, Telegram flag)
- the system log (latest vision/goal update events, Telegram connect)
The stored column only ever moves forward.
"""
import enum
import logging
import re
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.project import Project, MainframeInfo
from ..models.system_log import SystemLog, LogActor, LogEvent
from ..schemas.onboarding import EarlyOnboardingResult
from .intents import classify_intent
from ..tracer import trace_step, trace_result

logger = logging.getLogger(__name__)

COMPLETE_STATUS = 4


class OnboardingStep(str, enum.Enum):
    """The ordered onboarding steps."""
    VISION = "vision"
    LONG_TERM_GOALS = "long_term_goals"
    SHORT_TERM_GOALS = "short_term_goals"
    TELEGRAM = "telegram"


ONBOARDING_STEPS = list(OnboardingStep)

STEP_LABELS = {
    OnboardingStep.VISION: "Project vision",
    OnboardingStep.LONG_TERM_GOALS: "Long-term goals",
    OnboardingStep.SHORT_TERM_GOALS: "Short-term goals",
    OnboardingStep.TELEGRAM: "Connect Telegram",
}

STEP_PROMPTS = {
    OnboardingStep.VISION: (
        "First up is your project vision. In a couple of sentences, what do you ultimately "
        "want this project to achieve? If you're unsure for now, you can type **'skip'** "
        "and come back to this later."
    ),
    OnboardingStep.LONG_TERM_GOALS: (
        "Next is your Long-term goals. Over the next few months or years, what would you "
        "love this project to achieve? If you're unsure for now, you can type **'skip'** "
        "and we'll move on."
    ),
    OnboardingStep.SHORT_TERM_GOALS: (
        "Now let's set some Short-term goals. What are your priorities for today, this week, "
        "or the next few weeks? If you're unsure, you can type **'skip'** and we'll continue."
    ),
    OnboardingStep.TELEGRAM: (
        "Last step: connect your Telegram so I can send you important notifications. Once "
        "it's linked, tell me it's done, or type **'skip'** if you'd rather set this up later."
    ),
}

# Events whose presence proves a step was passed
STEP_EVENTS = {
    LogEvent.PROJECT_VISION_UPDATE: 1,
    LogEvent.PROJECT_GOALS_LONG_UPDATE: 2,
    LogEvent.PROJECT_GOALS_SHORT_UPDATE: 3,
}
TELEGRAM_CONNECTED_DETAILS = {"provider": "Telegram", "status": "connected"}

_ITEM_SPLIT_RE = re.compile(r"\n|\\n|•|\*|-")
_BULLET_RE = re.compile(r"^[-•*]\s*")


def next_step(status: int) -> Optional[OnboardingStep]:
    """0 -> vision ... 3 -> telegram; 4 and above -> None (complete)."""
    if 0 <= status < COMPLETE_STATUS:
        return ONBOARDING_STEPS[status]
    if status < 0:
        return ONBOARDING_STEPS[0]
    return None


def step_index(step: OnboardingStep) -> int:
    """1-based position of a step; passing it yields this status."""
    return ONBOARDING_STEPS.index(OnboardingStep(step)) + 1


def step_label(step: OnboardingStep) -> str:
    return STEP_LABELS[OnboardingStep(step)]


def step_prompt(step: OnboardingStep) -> str:
    return STEP_PROMPTS[OnboardingStep(step)]


def count_items(value) -> int:
    """
    Count goal items in a stored goal field.

    Lists count their non-blank strings; free text is split on newlines
    and bullet markers.
    """
    if isinstance(value, list):
        return len([v for v in value if isinstance(v, str) and v.strip()])
    if isinstance(value, str):
        parts = (_BULLET_RE.sub("", p.strip()) for p in _ITEM_SPLIT_RE.split(value))
        return len([p for p in parts if p])
    return 0


def status_from_data(project: Optional[Project]) -> int:
    """Candidate status from the project's own fields."""
    if project is None:
        return 0

    status = 0
    if isinstance(project.vision, str) and project.vision.strip():
        status = 1
    if count_items(project.long_term_goals) > 0:
        status = max(status, 2)
    if count_items(project.short_term_goals) > 0:
        status = max(status, 3)
    if project.telegram_connected:
        status = COMPLETE_STATUS
    return status


def is_telegram_connect(entry: SystemLog) -> bool:
    details = entry.details or {}
    return all(details.get(k) == v for k, v in TELEGRAM_CONNECTED_DETAILS.items())


def status_from_logs(entries: Iterable[SystemLog]) -> int:
    """Candidate status from a snapshot of system log entries."""
    status = 0
    for entry in entries:
        event = LogEvent(entry.event)
        if event == LogEvent.API_CONNECT and is_telegram_connect(entry):
            return COMPLETE_STATUS
        status = max(status, STEP_EVENTS.get(event, 0))
    return status


class OnboardingEngine:
    """
    Onboarding status derivation and persistence.

    Read failures are logged and count as "no progress" for the affected
    source, so derivation always produces a status.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_project(self, project_id: str) -> Optional[Project]:
        try:
            result = await self.db.execute(select(Project).where(Project.id == project_id))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.warning(f"Failed to load project {project_id}: {e}")
            return None

    async def _get_mainframe(self, project_id: str) -> Optional[MainframeInfo]:
        result = await self.db.execute(
            select(MainframeInfo).where(MainframeInfo.project_id == project_id)
        )
        return result.scalar_one_or_none()

    async def _latest_log(
        self,
        project_id: str,
        event: LogEvent,
        details_contains: Optional[dict] = None,
    ) -> Optional[SystemLog]:
        """Most recent log entry for an event, optionally matching detail keys."""
        stmt = (
            select(SystemLog)
            .where(SystemLog.project_id == project_id, SystemLog.event == event)
            .order_by(SystemLog.created_at.desc())
        )
        if not details_contains:
            stmt = stmt.limit(1)

        try:
            result = await self.db.execute(stmt)
            rows = result.scalars().all()
        except SQLAlchemyError as e:
            logger.warning(f"Failed to read {event.value} log for {project_id}: {e}")
            return None

        for row in rows:
            details = row.details or {}
            if not details_contains or all(details.get(k) == v for k, v in details_contains.items()):
                return row
        return None

    async def _step_logs(self, project_id: str) -> list[SystemLog]:
        found = []
        for event in STEP_EVENTS:
            entry = await self._latest_log(project_id, event)
            if entry is not None:
                found.append(entry)
        telegram = await self._latest_log(
            project_id, LogEvent.API_CONNECT, details_contains=TELEGRAM_CONNECTED_DETAILS
        )
        if telegram is not None:
            found.append(telegram)
        return found

    async def _derive(self, project_id: str, project: Optional[Project]) -> int:
        from_data = status_from_data(project)
        from_logs = status_from_logs(await self._step_logs(project_id))
        trace_step("onboarding", f"derive data={from_data} logs={from_logs}")
        return max(from_data, from_logs)

    async def derive(self, project_id: str) -> int:
        """Derive the status (0-4) without writing anything."""
        project = await self._get_project(project_id)
        return await self._derive(project_id, project)

    async def sync(self, project_id: str) -> int:
        """
        Derive the status and persist it if it moved forward.

        The stored status is never lowered, so a skipped step stays
        passed even though neither source shows data for it.
        """
        project = await self._get_project(project_id)
        derived = await self._derive(project_id, project)
        if project is None:
            return derived

        stored = project.onboarding_status or 0
        status = max(stored, derived)
        if status == stored:
            return status

        try:
            project.onboarding_status = status
            if status >= COMPLETE_STATUS:
                await self._set_complete(project)
            await self.db.commit()
            logger.info(f"Onboarding status for {project_id}: {stored} -> {status}")
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning(f"Failed to persist onboarding status for {project_id}: {e}")
            return stored

        trace_result("onboarding", "sync", True, status)
        return status

    async def _set_complete(self, project: Project) -> None:
        """Set the completion flags on the project and its mainframe. Caller commits."""
        already = project.onboarding_complete
        project.onboarding_status = COMPLETE_STATUS
        project.onboarding_complete = True

        mainframe = await self._get_mainframe(project.id)
        if mainframe is not None:
            mainframe.onboarding_complete = True
            mainframe.updated_at = datetime.utcnow()

        if not already:
            self.db.add(SystemLog(
                project_id=project.id,
                actor=LogActor.ZETA,
                event=LogEvent.ONBOARDING_COMPLETE,
                message="Onboarding complete",
                details={},
            ))

    async def mark_complete(self, project_id: str) -> None:
        project = await self._get_project(project_id)
        if project is None:
            return
        await self._set_complete(project)
        await self.db.commit()

    async def skip_step(self, project_id: str, step: OnboardingStep, current_status: int) -> int:
        """
        Mark `step` as passed without capturing its data.

        Returns the new status, which is persisted immediately.
        """
        step = OnboardingStep(step)
        status = max(current_status, step_index(step))

        project = await self._get_project(project_id)
        if project is None:
            return status

        try:
            project.onboarding_status = max(project.onboarding_status or 0, status)
            if status >= COMPLETE_STATUS:
                await self._set_complete(project)
            self.db.add(SystemLog(
                project_id=project_id,
                actor=LogActor.USER,
                event=LogEvent.ONBOARDING_SKIP,
                message=f"Skipped {step_label(step)}",
                details={"step": step.value},
            ))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning(f"Failed to persist skip of {step.value} for {project_id}: {e}")

        logger.info(f"Project {project_id} skipped {step.value}, status now {status}")
        return status

    async def should_use_onboarding(self, project_id: str) -> bool:
        """True while the project still has onboarding steps left."""
        try:
            mainframe = await self._get_mainframe(project_id)
        except SQLAlchemyError as e:
            logger.warning(f"Failed to read mainframe for {project_id}: {e}")
            mainframe = None

        if mainframe is not None and mainframe.onboarding_complete:
            return False
        return await self.sync(project_id) < COMPLETE_STATUS

    async def handle_early(
        self,
        project_id: str,
        message: str,
        onboarding_active: bool,
        current_step: Optional[OnboardingStep],
        status: int,
    ) -> EarlyOnboardingResult:
        """
        Handle skip phrases and "what onboarding step am I on" questions
        before any reply is generated.

        While the Telegram step is active, saying it's done counts as
        passing the step.
        """
        intent = classify_intent(message)

        skipping = intent.is_skip or (current_step == OnboardingStep.TELEGRAM and intent.is_done)
        if onboarding_active and current_step is not None and skipping:
            new_status = await self.skip_step(project_id, current_step, status)
            complete = new_status >= COMPLETE_STATUS
            if complete:
                reply = (
                    "All good, setup is complete. You can connect Telegram later "
                    "from the APIs panel."
                )
            else:
                upcoming = next_step(new_status)
                reply = (
                    f"No worries, we'll skip **{step_label(current_step)}**.\n\n"
                    f"{step_prompt(upcoming)}"
                )
            return EarlyOnboardingResult(
                handled=True,
                reply=reply,
                onboarding=not complete,
                step="complete" if complete else next_step(new_status).value,
                onboarding_status=COMPLETE_STATUS if complete else new_status,
            )

        if intent.is_status_question:
            if current_step is None:
                return EarlyOnboardingResult(
                    handled=True,
                    reply="Setup is complete (4/4).",
                    onboarding=False,
                    step="complete",
                    onboarding_status=status,
                )
            return EarlyOnboardingResult(
                handled=True,
                reply=(
                    f"You're currently on **{step_label(current_step)}**.\n\n"
                    f"{step_prompt(current_step)}"
                ),
                onboarding=True,
                step=current_step.value,
                onboarding_status=status,
            )

        return EarlyOnboardingResult(handled=False, onboarding_status=status)
