"""
Onboarding Capture

Pulls the datum the current onboarding step needs (a vision statement or
a list of goals) out of a chat message with a strict-JSON model call, and
saves it.

Capture is best-effort: provider errors, malformed JSON and empty
extractions all mean "nothing captured" and the step stays where it is.
"""
import logging
import re
from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.project import Project, MainframeInfo
from ..models.goal import Goal, GoalType
from ..models.system_log import SystemLog, LogActor, LogEvent
from ..schemas.onboarding import (
    CaptureFlags,
    CaptureResult,
    VisionExtraction,
    LongTermGoalsExtraction,
    ShortTermGoalsExtraction,
)
from ..llm import LLMProvider, LLMError, get_llm_provider, get_model_for_task
from ..prompts.extractor import (
    VISION_EXTRACTOR_SYSTEM,
    LONG_TERM_GOALS_EXTRACTOR_SYSTEM,
    SHORT_TERM_GOALS_EXTRACTOR_SYSTEM,
    EXTRACTOR_PROMPT,
)
from .onboarding import next_step, step_label, step_prompt
from ..tracer import trace_step, trace_call, trace_result

logger = logging.getLogger(__name__)

MIN_VISION_LENGTH = 40
VISION_KEYWORDS_RE = re.compile(
    r"\b(vision|goal|aim|plan|project|want to|would like to|my focus is|my aim is)\b",
    re.IGNORECASE,
)

_VISION_LEAD_INS = [
    re.compile(r"^the project aims to\s*", re.IGNORECASE),
    re.compile(r"^the goal is to\s*", re.IGNORECASE),
    re.compile(r"^my (project )?vision is to\s*", re.IGNORECASE),
    re.compile(r"^i (want|would like) to\s*", re.IGNORECASE),
    re.compile(r"^to\s+", re.IGNORECASE),
]
_WRAPPING_QUOTES_RE = re.compile(r"^[\"']+|[\"']+$")
_BULLET_RE = re.compile(r"^[-•*]\s*")

NEXT_STEP_SEPARATOR = "\n\n---\n"
_STALE_NOTICE_RES = [
    re.compile(r"📌.*?(?=\n---|\Z)", re.DOTALL),
    re.compile(
        r"It looks like I [^\n]*?save your project vision directly.*?(?=\n---|\Z)",
        re.IGNORECASE | re.DOTALL,
    ),
    re.compile(
        r"It seems there [^\n]*?updating your [^\n]*? goals.*?(?=\n---|\Z)",
        re.IGNORECASE | re.DOTALL,
    ),
]
_EXTRA_BLANK_LINES_RE = re.compile(r"\n{3,}")

VISION_SAVED_REPLY = "Nice, I've saved that as your project vision."
LONG_TERM_SAVED_REPLY = "Great, I've saved those as your long-term goals."
SHORT_TERM_SAVED_REPLY = "Awesome, I've saved those as your short-term goals."


def normalize_vision(raw: str) -> str:
    """Strip quotes and throw-away lead-ins, capitalize, end with punctuation."""
    v = _WRAPPING_QUOTES_RE.sub("", raw.strip())
    for pattern in _VISION_LEAD_INS:
        v = pattern.sub("", v)
    v = v.strip()
    if not v:
        return ""
    v = v[0].upper() + v[1:]
    if v[-1] not in ".!?":
        v += "."
    return v


def strip_stale_save_notices(text: str) -> str:
    """
    Drop reply paragraphs where the model claims it could not save onboarding
    data (capture does the saving). Each cut runs up to the next-step
    separator or the end of the text.
    """
    for pattern in _STALE_NOTICE_RES:
        text = pattern.sub("", text)
    return _EXTRA_BLANK_LINES_RE.sub("\n\n", text).strip()


def normalize_goal_key(text: str) -> str:
    return " ".join(text.strip().lower().split())


def clean_goals(raw_goals: list) -> List[str]:
    goals = []
    for g in raw_goals:
        text = _BULLET_RE.sub("", str(g or "").strip()).strip()
        if text:
            goals.append(text)
    return goals


def passes_vision_gate(message: str) -> bool:
    trimmed = message.strip()
    return len(trimmed) >= MIN_VISION_LENGTH and bool(VISION_KEYWORDS_RE.search(trimmed))


class OnboardingCapture:
    """
    Step data capture for onboarding chat turns.

    Only the current step is considered:
    - status 0: vision (gated on length and intent keywords)
    - status 1: long-term goals
    - status 2: short-term goals
    """

    def __init__(self, db: AsyncSession, llm: Optional[LLMProvider] = None):
        self.db = db
        self._llm = llm

    @property
    def llm(self) -> LLMProvider:
        if self._llm is None:
            self._llm = get_llm_provider()
        return self._llm

    async def _extract(self, system_prompt: str, message: str) -> dict:
        trace_call("extraction", "generate_json")
        return await self.llm.generate_json(
            prompt=EXTRACTOR_PROMPT.format(message=message),
            model=get_model_for_task("onboarding_extraction"),
            system_prompt=system_prompt,
        )

    async def extract_vision(self, message: str) -> Optional[str]:
        """Return a normalized vision statement, or None."""
        try:
            data = await self._extract(VISION_EXTRACTOR_SYSTEM, message)
            parsed = VisionExtraction.model_validate(data)
        except (LLMError, ValueError) as e:
            # ValidationError is a ValueError
            logger.error(f"Vision extraction failed: {e}")
            return None

        if not parsed.has_vision or not isinstance(parsed.vision, str):
            return None
        return normalize_vision(parsed.vision) or None

    async def extract_goals(self, goal_type: GoalType, message: str) -> List[str]:
        """Return the goals stated in a message (possibly empty)."""
        if goal_type == GoalType.LONG_TERM:
            system_prompt, schema = LONG_TERM_GOALS_EXTRACTOR_SYSTEM, LongTermGoalsExtraction
        else:
            system_prompt, schema = SHORT_TERM_GOALS_EXTRACTOR_SYSTEM, ShortTermGoalsExtraction

        try:
            data = await self._extract(system_prompt, message)
            parsed = schema.model_validate(data)
        except (LLMError, ValueError) as e:
            logger.error(f"{goal_type.value} goal extraction failed: {e}")
            return []

        has_goals = (
            parsed.has_long_term_goals
            if isinstance(parsed, LongTermGoalsExtraction)
            else parsed.has_short_term_goals
        )
        if not has_goals:
            return []
        return clean_goals(parsed.goals)

    async def _get_project(self, project_id: str) -> Optional[Project]:
        result = await self.db.execute(select(Project).where(Project.id == project_id))
        return result.scalar_one_or_none()

    async def _get_mainframe(self, project_id: str) -> Optional[MainframeInfo]:
        result = await self.db.execute(
            select(MainframeInfo).where(MainframeInfo.project_id == project_id)
        )
        return result.scalar_one_or_none()

    async def _existing_goal_keys(self, project_id: str, goal_type: GoalType) -> set:
        # Always read fresh; goals may have changed since the last turn
        result = await self.db.execute(
            select(Goal.description).where(
                Goal.project_id == project_id,
                Goal.goal_type == goal_type,
            )
        )
        return {normalize_goal_key(d or "") for d in result.scalars().all()}

    async def save_vision(self, project_id: str, vision: str) -> bool:
        try:
            project = await self._get_project(project_id)
            if project is None:
                return False
            now = datetime.utcnow()

            project.vision = vision
            project.onboarding_status = max(project.onboarding_status or 0, 1)

            mainframe = await self._get_mainframe(project_id)
            if mainframe is not None:
                mainframe.vision = vision
                mainframe.current_date = now.date().isoformat()
                mainframe.updated_at = now

            self.db.add(SystemLog(
                project_id=project_id,
                actor=LogActor.USER,
                event=LogEvent.PROJECT_VISION_UPDATE,
                message="Project vision updated",
                details={"vision": vision},
            ))
            await self.db.commit()
            return True
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning(f"Failed to save vision for {project_id}: {e}")
            return False

    async def save_goals(self, project_id: str, goal_type: GoalType, goals: List[str]) -> bool:
        """Insert net-new goals, mirror the list onto project and mainframe, log it."""
        if goal_type == GoalType.LONG_TERM:
            target_status, event = 2, LogEvent.PROJECT_GOALS_LONG_UPDATE
        else:
            target_status, event = 3, LogEvent.PROJECT_GOALS_SHORT_UPDATE

        try:
            project = await self._get_project(project_id)
            if project is None:
                return False

            seen = await self._existing_goal_keys(project_id, goal_type)
            inserted = 0
            for goal in goals:
                key = normalize_goal_key(goal)
                if key in seen:
                    continue
                seen.add(key)
                self.db.add(Goal(project_id=project_id, goal_type=goal_type, description=goal))
                inserted += 1

            if goal_type == GoalType.LONG_TERM:
                project.long_term_goals = goals
            else:
                project.short_term_goals = goals
            project.onboarding_status = max(project.onboarding_status or 0, target_status)

            mainframe = await self._get_mainframe(project_id)
            if mainframe is not None:
                if goal_type == GoalType.LONG_TERM:
                    mainframe.long_term_goals = goals
                else:
                    mainframe.short_term_goals = goals
                mainframe.updated_at = datetime.utcnow()

            self.db.add(SystemLog(
                project_id=project_id,
                actor=LogActor.USER,
                event=event,
                message=f"{len(goals)} {goal_type.value.replace('_', '-')} goal(s) saved",
                details={"goals": goals, "inserted": inserted},
            ))
            await self.db.commit()
            logger.info(f"Saved {inserted} new {goal_type.value} goal(s) for {project_id}")
            return True
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning(f"Failed to save {goal_type.value} goals for {project_id}: {e}")
            return False

    async def capture_step_data(
        self,
        project_id: str,
        status: int,
        message: str,
        text_content: str = "",
        onboarding_active: bool = True,
    ) -> CaptureResult:
        """
        Capture the current step's datum from `message`.

        Args:
            project_id: Project the message belongs to
            status: Onboarding status before this turn (0-4)
            message: Raw user message
            text_content: Reply text to return (replaced by a confirmation on capture)
            onboarding_active: Whether to append the next-step prompt

        Returns:
            CaptureResult with the reply text and the effective status
        """
        flags = CaptureFlags()
        effective_status = status
        has_text = bool(message and message.strip())

        if status == 0 and has_text:
            if passes_vision_gate(message):
                vision = await self.extract_vision(message)
                if vision and await self.save_vision(project_id, vision):
                    flags.vision_captured = True
                    effective_status = 1
                    text_content = VISION_SAVED_REPLY
            else:
                trace_step("extraction", "vision gate not met, skipping model call")

        elif status in (1, 2) and has_text:
            goal_type = GoalType.LONG_TERM if status == 1 else GoalType.SHORT_TERM
            goals = await self.extract_goals(goal_type, message)
            if goals and await self.save_goals(project_id, goal_type, goals):
                effective_status = status + 1
                if goal_type == GoalType.LONG_TERM:
                    flags.long_term_goals_captured = True
                    text_content = LONG_TERM_SAVED_REPLY
                else:
                    flags.short_term_goals_captured = True
                    text_content = SHORT_TERM_SAVED_REPLY

        effective_next = next_step(effective_status) if onboarding_active else None
        if effective_next is not None:
            text_content = (
                f"{text_content}{NEXT_STEP_SEPARATOR}Next up: **{step_label(effective_next)}**\n"
                f"{step_prompt(effective_next)}"
            )
        text_content = strip_stale_save_notices(text_content)

        trace_result("extraction", "capture_step_data", True, flags.model_dump())
        return CaptureResult(
            text_content=text_content,
            effective_status=effective_status,
            effective_next_step=effective_next.value if effective_next else None,
            captured=flags,
        )
