"""
Autonomy Plan Applier

Applies an assistant-proposed plan to a project under an autonomy policy:
- off:    nothing happens, nothing is logged
- shadow: every proposed action is logged with applied=False, no writes
- ask:    logged with applied=True and written
- auto:   logged with applied=True and written

Confirmation for `ask` happens before a plan is built, so ask and auto
write identically here.

The plan is flattened into typed operations and dispatched one at a time
in a fixed group order (vision, long goals, short goals, tasks, calendar,
files). Each operation commits on its own; a failing operation is rolled
back, logged and skipped, and the rest of the plan still runs.
"""
import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple, Union

from sqlalchemy import select, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models.project import Project, MainframeInfo
from ..models.goal import Goal, GoalType
from ..models.task_item import TaskItem, TaskAssignee, TaskStatus
from ..models.calendar_item import CalendarItem
from ..models.document import Document
from ..models.system_log import (
    SystemLog,
    LogActor,
    LogEvent,
    AutonomyEvent,
    AutonomyCategory,
    AutonomyAction,
)
from ..schemas.autonomy import Plan, TaskChange, CalendarChange, FileRequest
from ..storage import BlobStorage, StorageError, get_blob_storage
from ..tracer import trace_step, trace_result

logger = logging.getLogger(__name__)

WRITE_POLICIES = {"ask", "auto"}
TASK_SOURCE = "autonomy"

_TIME_CUT_RE = re.compile(r"[Z+ -]")
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_SLUG_RE = re.compile(r"[^a-z0-9]+")


def split_iso_datetime(iso: Optional[str], all_day: bool = False) -> Tuple[Optional[str], Optional[str]]:
    """
    Split an ISO-8601 timestamp into ("YYYY-MM-DD", "HH:MM:SS").

    The time is None for all-day items and for bare dates. The wall-clock
    time is kept as written; any offset is dropped, not converted.
    """
    if not iso:
        return None, None

    if "T" not in iso:
        date = iso[:10]
        return (date if _ISO_DATE_RE.match(date) else None), None

    date_part, rest = iso.split("T", 1)
    date = date_part[:10]
    if all_day:
        return date, None

    cut = _TIME_CUT_RE.search(rest)
    raw = rest[:cut.start()] if cut else rest
    parts = raw.split(":")
    hh = parts[0] if len(parts) > 0 and parts[0] else "00"
    mm = parts[1] if len(parts) > 1 and parts[1] else "00"
    ss = (parts[2] if len(parts) > 2 and parts[2] else "00")[:2]
    return date, f"{hh.zfill(2)}:{mm.zfill(2)}:{ss.zfill(2)}"


def slugify(text: str) -> str:
    slug = _SLUG_RE.sub("-", (text or "").lower()).strip("-")[:80]
    return slug or "file"


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

_GOAL_CATEGORY = {
    GoalType.LONG_TERM: AutonomyCategory.LONG_GOALS,
    GoalType.SHORT_TERM: AutonomyCategory.SHORT_GOALS,
}


@dataclass
class SetVision:
    text: str
    confidence: Optional[float] = None

    category = AutonomyCategory.VISION
    action = AutonomyAction.UPDATE

    def payload(self) -> dict:
        return {"new_text": self.text, "confidence": self.confidence}


@dataclass
class CreateGoal:
    goal_type: GoalType
    description: str

    action = AutonomyAction.CREATE

    @property
    def category(self) -> AutonomyCategory:
        return _GOAL_CATEGORY[self.goal_type]

    def payload(self) -> dict:
        return {"id": None, "description": self.description, "goal_type": self.goal_type.value, "delete": False}


@dataclass
class UpdateGoal:
    goal_type: GoalType
    id: str
    description: str

    action = AutonomyAction.UPDATE

    @property
    def category(self) -> AutonomyCategory:
        return _GOAL_CATEGORY[self.goal_type]

    def payload(self) -> dict:
        return {"id": self.id, "description": self.description, "goal_type": self.goal_type.value, "delete": False}


@dataclass
class DeleteGoal:
    goal_type: GoalType
    id: Optional[str] = None
    description: Optional[str] = None

    action = AutonomyAction.DELETE

    @property
    def category(self) -> AutonomyCategory:
        return _GOAL_CATEGORY[self.goal_type]

    def payload(self) -> dict:
        return {"id": self.id, "description": self.description or "", "goal_type": self.goal_type.value, "delete": True}


@dataclass
class CreateTask:
    change: TaskChange

    category = AutonomyCategory.TASKS
    action = AutonomyAction.CREATE

    def payload(self) -> dict:
        return self.change.model_dump(mode="json", exclude_none=True)


@dataclass
class UpdateTask:
    change: TaskChange

    category = AutonomyCategory.TASKS
    action = AutonomyAction.UPDATE

    def payload(self) -> dict:
        return self.change.model_dump(mode="json", exclude_none=True)


@dataclass
class CreateCalendarItem:
    change: CalendarChange
    date: Optional[str]
    time: Optional[str]

    category = AutonomyCategory.CALENDAR
    action = AutonomyAction.CREATE

    def payload(self) -> dict:
        return {**self.change.model_dump(exclude_none=True), "date": self.date, "time": self.time}


@dataclass
class UpdateCalendarItem:
    change: CalendarChange
    date: Optional[str]
    time: Optional[str]

    category = AutonomyCategory.CALENDAR
    action = AutonomyAction.UPDATE

    def payload(self) -> dict:
        return {**self.change.model_dump(exclude_none=True), "date": self.date, "time": self.time}


@dataclass
class GenerateFile:
    request: FileRequest

    category = AutonomyCategory.FILES
    action = AutonomyAction.GENERATE

    def payload(self) -> dict:
        return {"filename": self.request.filename, "mime": self.request.mime}


Operation = Union[
    SetVision,
    CreateGoal,
    UpdateGoal,
    DeleteGoal,
    CreateTask,
    UpdateTask,
    CreateCalendarItem,
    UpdateCalendarItem,
    GenerateFile,
]


def plan_operations(plan: Plan) -> List[Operation]:
    """
    Flatten a plan into operations, in application order.

    Goal entries: `delete` wins, then an `id` means update, otherwise
    create. Creates without a description are dropped; updates write
    whatever description they carry, empty included.
    """
    ops: List[Operation] = []

    if plan.vision and plan.vision.new_text:
        ops.append(SetVision(text=plan.vision.new_text, confidence=plan.vision.confidence))

    for goal_type, entries in (
        (GoalType.LONG_TERM, plan.long_term_goals),
        (GoalType.SHORT_TERM, plan.short_term_goals),
    ):
        for g in entries:
            description = (g.description or "").strip()
            if g.delete:
                ops.append(DeleteGoal(goal_type=goal_type, id=g.id, description=description or None))
            elif g.id:
                ops.append(UpdateGoal(goal_type=goal_type, id=g.id, description=description))
            elif description:
                ops.append(CreateGoal(goal_type=goal_type, description=description))

    for t in plan.tasks:
        ops.append(UpdateTask(change=t) if t.id else CreateTask(change=t))

    for c in plan.calendar_items:
        date, time_of_day = split_iso_datetime(c.start_time, c.all_day)
        op_cls = UpdateCalendarItem if c.id else CreateCalendarItem
        ops.append(op_cls(change=c, date=date, time=time_of_day))

    for f in plan.files:
        ops.append(GenerateFile(request=f))

    return ops


# ---------------------------------------------------------------------------
# Applier
# ---------------------------------------------------------------------------

class AutonomyPlanApplier:
    """
    Executes plan operations against the database and blob storage.

    Every proposed operation gets an AutonomyEvent row (unless the policy
    is off), whether or not it was written.
    """

    def __init__(self, db: AsyncSession, storage: Optional[BlobStorage] = None):
        self.db = db
        self._storage = storage
        self._handlers = {
            SetVision: self._set_vision,
            CreateGoal: self._create_goal,
            UpdateGoal: self._update_goal,
            DeleteGoal: self._delete_goal,
            CreateTask: self._create_task,
            UpdateTask: self._update_task,
            CreateCalendarItem: self._create_calendar_item,
            UpdateCalendarItem: self._update_calendar_item,
            GenerateFile: self._generate_file,
        }

    @property
    def storage(self) -> BlobStorage:
        if self._storage is None:
            self._storage = get_blob_storage()
        return self._storage

    async def apply(self, project_id: str, plan: Plan, policy: str) -> None:
        """
        Apply `plan` to a project.

        Outcomes are observable through the autonomy event log; nothing
        is returned and per-operation failures are not raised.
        """
        if policy == "off":
            trace_step("autonomy", "policy off, ignoring plan")
            return

        will_apply = policy in WRITE_POLICIES
        ops = plan_operations(plan)
        logger.info(f"Applying {len(ops)} autonomy operation(s) to {project_id} (policy={policy})")

        for op in ops:
            await self._log(project_id, op, will_apply)
            if not will_apply:
                continue

            handler = self._handlers[type(op)]
            try:
                await handler(project_id, op)
                await self.db.commit()
                trace_result("autonomy", f"{op.category.value}.{op.action.value}", True)
            except (SQLAlchemyError, StorageError) as e:
                await self.db.rollback()
                logger.warning(
                    f"Autonomy {op.category.value}.{op.action.value} failed for {project_id}: {e}"
                )
                trace_result("autonomy", f"{op.category.value}.{op.action.value}", False, str(e))

    async def _log(self, project_id: str, op: Operation, applied: bool) -> None:
        try:
            self.db.add(AutonomyEvent(
                project_id=project_id,
                category=op.category,
                action=op.action,
                payload=op.payload(),
                applied=applied,
            ))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.warning(f"Failed to log autonomy event for {project_id}: {e}")

    # --- vision ---

    async def _set_vision(self, project_id: str, op: SetVision) -> None:
        project = await self.db.get(Project, project_id)
        if project is None:
            logger.warning(f"Vision update skipped, project {project_id} not found")
            return
        project.vision = op.text

        result = await self.db.execute(
            select(MainframeInfo).where(MainframeInfo.project_id == project_id)
        )
        mainframe = result.scalar_one_or_none()
        if mainframe is not None:
            mainframe.vision = op.text
            mainframe.updated_at = datetime.utcnow()

    # --- goals ---

    async def _create_goal(self, project_id: str, op: CreateGoal) -> None:
        result = await self.db.execute(
            select(Goal.id).where(
                Goal.project_id == project_id,
                Goal.goal_type == op.goal_type,
                Goal.description == op.description,
            ).limit(1)
        )
        if result.scalar_one_or_none() is not None:
            trace_step("autonomy", f"goal already exists: {op.description[:40]}")
            return
        self.db.add(Goal(project_id=project_id, goal_type=op.goal_type, description=op.description))

    async def _update_goal(self, project_id: str, op: UpdateGoal) -> None:
        result = await self.db.execute(
            select(Goal).where(Goal.id == op.id, Goal.project_id == project_id)
        )
        goal = result.scalar_one_or_none()
        if goal is None:
            logger.warning(f"Goal {op.id} not found in project {project_id}")
            return
        goal.goal_type = op.goal_type
        goal.description = op.description

    async def _delete_goal(self, project_id: str, op: DeleteGoal) -> None:
        stmt = delete(Goal).where(Goal.project_id == project_id, Goal.goal_type == op.goal_type)
        if op.id:
            stmt = stmt.where(Goal.id == op.id)
        elif op.description:
            stmt = stmt.where(Goal.description == op.description)
        else:
            return
        # Zero matching rows is fine
        await self.db.execute(stmt)

    # --- tasks ---

    async def _create_task(self, project_id: str, op: CreateTask) -> None:
        t = op.change
        task_type = t.assignee or TaskAssignee.ZETA.value

        result = await self.db.execute(
            select(TaskItem.id).where(
                TaskItem.project_id == project_id,
                TaskItem.task_type == task_type,
                TaskItem.title == t.title,
            ).limit(1)
        )
        if result.scalar_one_or_none() is not None:
            trace_step("autonomy", f"task already exists: {t.title[:40]}")
            return

        self.db.add(TaskItem(
            project_id=project_id,
            task_type=task_type,
            title=t.title,
            details=t.details,
            procedure=t.procedure,
            status=t.status or TaskStatus.UNDER_CONSTRUCTION.value,
            due_at=_naive_utc(t.due_at),
            improvement_note=t.improvement_note,
            source=TASK_SOURCE,
        ))

    async def _update_task(self, project_id: str, op: UpdateTask) -> None:
        t = op.change
        result = await self.db.execute(
            select(TaskItem).where(TaskItem.id == t.id, TaskItem.project_id == project_id)
        )
        task = result.scalar_one_or_none()
        if task is None:
            logger.warning(f"Task {t.id} not found in project {project_id}")
            return

        # Only the fields the plan provided
        task.title = t.title
        if t.assignee is not None:
            task.task_type = t.assignee
        if t.details is not None:
            task.details = t.details
        if t.procedure is not None:
            task.procedure = t.procedure
        if t.status is not None:
            task.status = t.status
        if t.due_at is not None:
            task.due_at = _naive_utc(t.due_at)
        if t.improvement_note is not None:
            task.improvement_note = t.improvement_note
        task.source = TASK_SOURCE

    # --- calendar ---

    async def _create_calendar_item(self, project_id: str, op: CreateCalendarItem) -> None:
        c = op.change
        stmt = select(CalendarItem.id).where(
            CalendarItem.project_id == project_id,
            CalendarItem.title == c.title,
        )
        if op.date is None:
            stmt = stmt.where(CalendarItem.date.is_(None))
        else:
            stmt = stmt.where(CalendarItem.date == op.date)
        if op.time:
            stmt = stmt.where(CalendarItem.time == op.time)

        result = await self.db.execute(stmt.limit(1))
        if result.scalar_one_or_none() is not None:
            trace_step("autonomy", f"calendar item already exists: {c.title[:40]}")
            return

        self.db.add(CalendarItem(
            project_id=project_id,
            type=c.type or "event",
            title=c.title,
            details=c.notes,
            date=op.date,
            time=op.time,
            notified=False,
        ))

    async def _update_calendar_item(self, project_id: str, op: UpdateCalendarItem) -> None:
        c = op.change
        result = await self.db.execute(
            select(CalendarItem).where(CalendarItem.id == c.id, CalendarItem.project_id == project_id)
        )
        item = result.scalar_one_or_none()
        if item is None:
            logger.warning(f"Calendar item {c.id} not found in project {project_id}")
            return

        item.title = c.title
        if c.type:
            item.type = c.type
        if c.notes is not None:
            item.details = c.notes
        if c.start_time:
            item.date = op.date
            item.time = op.time
            item.notified = False

    # --- files ---

    async def _generate_file(self, project_id: str, op: GenerateFile) -> None:
        f = op.request
        path = f"projects/{project_id}/ai/{int(time.time() * 1000)}-{slugify(f.filename)}"

        await self.storage.upload(path, f.content.encode("utf-8"), content_type=f.mime)
        file_url = self.storage.get_public_url(path) or path

        self.db.add(Document(
            project_id=project_id,
            file_name=f.filename,
            file_url=file_url,
            description=f.description,
        ))
        self.db.add(SystemLog(
            project_id=project_id,
            actor=LogActor.ZETA,
            event=LogEvent.FILE_GENERATE,
            message=f"Generated {f.filename}",
            details={"file_name": f.filename, "file_url": file_url, "mime": f.mime},
        ))
        logger.info(f"Stored generated file {path}")
