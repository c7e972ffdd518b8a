"""Autonomy plan application: policy gating, dedup and best-effort writes."""
from pathlib import Path

import pytest
from sqlalchemy import select, func

from zeta.engine.autonomy import (
    AutonomyPlanApplier,
    plan_operations,
    split_iso_datetime,
    slugify,
    SetVision,
    CreateGoal,
    UpdateGoal,
    DeleteGoal,
    CreateTask,
    CreateCalendarItem,
    GenerateFile,
)
from zeta.models.goal import Goal, GoalType
from zeta.models.task_item import TaskItem
from zeta.models.calendar_item import CalendarItem
from zeta.models.document import Document
from zeta.models.project import Project
from zeta.models.system_log import AutonomyEvent, AutonomyCategory, AutonomyAction
from zeta.schemas.autonomy import Plan
from zeta.storage import BlobStorage, StorageError


def _plan(**fields) -> Plan:
    return Plan.model_validate(fields)


MIXED_PLAN = {
    "vision": {"new_text": "Be the best calculus tutor."},
    "long_term_goals": [{"description": "Reach 1k students"}],
    "tasks": [{"title": "Draft syllabus", "assignee": "user"}],
    "calendar_items": [{"title": "Kickoff", "start_time": "2025-12-20T14:30:00Z"}],
}


async def _count(db, model, project_id):
    return (await db.execute(
        select(func.count()).select_from(model).where(model.project_id == project_id)
    )).scalar()


async def _events(db, project_id):
    return (await db.execute(
        select(AutonomyEvent).where(AutonomyEvent.project_id == project_id).order_by(AutonomyEvent.created_at)
    )).scalars().all()


class FlakyStorage(BlobStorage):
    """Fails the first upload, stores the rest in memory."""

    def __init__(self):
        self.blobs = {}
        self.failed = False

    async def upload(self, path, data, content_type="text/plain"):
        if not self.failed:
            self.failed = True
            raise StorageError("bucket unavailable")
        self.blobs[path] = data

    def get_public_url(self, path):
        return f"https://cdn.test/{path}"


@pytest.mark.parametrize("iso,all_day,expected", [
    ("2025-12-20T14:30:00Z", False, ("2025-12-20", "14:30:00")),
    ("2025-12-20T14:30:00Z", True, ("2025-12-20", None)),
    ("2025-12-20T09:05+02:00", False, ("2025-12-20", "09:05:00")),
    ("2025-12-20T07:00:59.123Z", False, ("2025-12-20", "07:00:59")),
    ("2025-12-20", False, ("2025-12-20", None)),
    ("garbage", False, (None, None)),
    (None, False, (None, None)),
])
def test_split_iso_datetime(iso, all_day, expected):
    assert split_iso_datetime(iso, all_day) == expected


def test_slugify():
    assert slugify("Q1 Plan (draft).md") == "q1-plan-draft-md"
    assert slugify("!!!") == "file"
    assert len(slugify("a" * 200)) == 80


def test_plan_operations_fixed_order():
    plan = _plan(
        files=[{"filename": "notes.md", "mime": "text/markdown", "content": "# hi"}],
        calendar_items=[{"title": "Kickoff", "start_time": "2025-12-20"}],
        tasks=[{"title": "Draft syllabus"}],
        short_term_goals=[{"id": "g1", "delete": True}],
        long_term_goals=[{"id": "g2", "description": "Grow"}, {"description": "Reach 1k"}, {"description": " "}],
        vision={"new_text": "New vision."},
    )
    ops = plan_operations(plan)
    assert [type(op) for op in ops] == [
        SetVision, UpdateGoal, CreateGoal, DeleteGoal, CreateTask, CreateCalendarItem, GenerateFile,
    ]
    assert ops[3].category == AutonomyCategory.SHORT_GOALS
    assert ops[5].date == "2025-12-20" and ops[5].time is None


@pytest.mark.asyncio
async def test_shadow_logs_without_writing(db, project):
    pid = project.id
    await AutonomyPlanApplier(db).apply(pid, _plan(**MIXED_PLAN), "shadow")

    events = await _events(db, pid)
    assert len(events) == 4
    assert all(e.applied is False for e in events)

    assert await _count(db, Goal, pid) == 0
    assert await _count(db, TaskItem, pid) == 0
    assert await _count(db, CalendarItem, pid) == 0
    assert (await db.get(Project, pid)).vision is None


@pytest.mark.asyncio
@pytest.mark.parametrize("policy", ["auto", "ask"])
async def test_writing_policies_log_and_write(db, project, policy):
    pid = project.id
    await AutonomyPlanApplier(db).apply(pid, _plan(**MIXED_PLAN), policy)

    events = await _events(db, pid)
    assert len(events) == 4
    assert all(e.applied is True for e in events)
    assert [e.category for e in events] == [
        AutonomyCategory.VISION,
        AutonomyCategory.LONG_GOALS,
        AutonomyCategory.TASKS,
        AutonomyCategory.CALENDAR,
    ]

    assert (await db.get(Project, pid)).vision == "Be the best calculus tutor."
    assert await _count(db, Goal, pid) == 1

    task = (await db.execute(select(TaskItem).where(TaskItem.project_id == pid))).scalar_one()
    assert task.task_type == "user"
    assert task.status == "under_construction"
    assert task.source == "autonomy"

    item = (await db.execute(select(CalendarItem).where(CalendarItem.project_id == pid))).scalar_one()
    assert (item.date, item.time, item.type) == ("2025-12-20", "14:30:00", "event")


@pytest.mark.asyncio
async def test_off_does_nothing(db, project):
    pid = project.id
    await AutonomyPlanApplier(db).apply(pid, _plan(**MIXED_PLAN), "off")

    assert await _events(db, pid) == []
    assert await _count(db, Goal, pid) == 0
    assert await _count(db, TaskItem, pid) == 0


@pytest.mark.asyncio
async def test_goal_create_is_idempotent(db, project):
    pid = project.id
    plan = _plan(long_term_goals=[{"description": "Reach 1k students"}])
    applier = AutonomyPlanApplier(db)

    await applier.apply(pid, plan, "auto")
    await applier.apply(pid, plan, "auto")

    assert await _count(db, Goal, pid) == 1
    assert len(await _events(db, pid)) == 2


@pytest.mark.asyncio
async def test_goal_update_and_delete(db, project):
    pid = project.id
    keep = Goal(project_id=pid, goal_type=GoalType.SHORT_TERM, description="Old wording")
    by_id = Goal(project_id=pid, goal_type=GoalType.SHORT_TERM, description="Remove me")
    by_text = Goal(project_id=pid, goal_type=GoalType.SHORT_TERM, description="Remove me too")
    db.add_all([keep, by_id, by_text])
    await db.commit()
    keep_id, by_id_id = keep.id, by_id.id

    plan = _plan(short_term_goals=[
        {"id": keep_id, "description": "New wording"},
        {"id": by_id_id, "delete": True},
        {"description": "Remove me too", "delete": True},
        {"description": "Not there", "delete": True},
    ])
    await AutonomyPlanApplier(db).apply(pid, plan, "auto")

    remaining = (await db.execute(
        select(Goal.description).where(Goal.project_id == pid)
    )).scalars().all()
    assert remaining == ["New wording"]

    actions = [e.action for e in await _events(db, pid)]
    assert actions == [
        AutonomyAction.UPDATE,
        AutonomyAction.DELETE,
        AutonomyAction.DELETE,
        AutonomyAction.DELETE,
    ]


@pytest.mark.asyncio
async def test_failed_operation_does_not_stop_plan(db, project):
    pid = project.id
    first = Goal(project_id=pid, goal_type=GoalType.LONG_TERM, description="A")
    second = Goal(project_id=pid, goal_type=GoalType.LONG_TERM, description="B")
    db.add_all([first, second])
    await db.commit()
    second_id = second.id

    # Renaming B to A violates the uniqueness of (project, type, description)
    plan = _plan(
        long_term_goals=[{"id": second_id, "description": "A"}, {"description": "C"}],
        tasks=[{"title": "Still runs"}],
    )
    await AutonomyPlanApplier(db).apply(pid, plan, "auto")

    descriptions = sorted((await db.execute(
        select(Goal.description).where(Goal.project_id == pid)
    )).scalars().all())
    assert descriptions == ["A", "B", "C"]
    assert await _count(db, TaskItem, pid) == 1
    assert len(await _events(db, pid)) == 3


@pytest.mark.asyncio
async def test_task_update_patches_provided_fields(db, project):
    pid = project.id
    task = TaskItem(project_id=pid, task_type="zeta", title="Write outline", details="Keep it short")
    db.add(task)
    await db.commit()
    task_id = task.id

    plan = _plan(tasks=[{"id": task_id, "title": "Write outline", "status": "done"}])
    await AutonomyPlanApplier(db).apply(pid, plan, "auto")

    refreshed = (await db.execute(select(TaskItem).where(TaskItem.id == task_id))).scalar_one()
    assert refreshed.status == "done"
    assert refreshed.details == "Keep it short"


@pytest.mark.asyncio
async def test_task_create_dedupes_on_assignee_and_title(db, project):
    pid = project.id
    plan = _plan(tasks=[
        {"title": "Draft syllabus"},
        {"title": "Draft syllabus"},
        {"title": "Draft syllabus", "assignee": "user", "due_at": "2025-12-20T10:00:00+02:00"},
    ])
    await AutonomyPlanApplier(db).apply(pid, plan, "auto")

    tasks = (await db.execute(select(TaskItem).where(TaskItem.project_id == pid))).scalars().all()
    assert sorted(t.task_type for t in tasks) == ["user", "zeta"]
    user_task = next(t for t in tasks if t.task_type == "user")
    assert user_task.due_at.tzinfo is None
    assert user_task.due_at.hour == 8


@pytest.mark.asyncio
async def test_calendar_all_day_and_dedupe(db, project):
    pid = project.id
    plan = _plan(calendar_items=[
        {"title": "Exam", "type": "event", "start_time": "2025-12-20T09:00:00Z", "all_day": True},
        {"title": "Exam", "start_time": "2025-12-20T17:00:00Z", "all_day": True},
    ])
    await AutonomyPlanApplier(db).apply(pid, plan, "auto")

    items = (await db.execute(select(CalendarItem).where(CalendarItem.project_id == pid))).scalars().all()
    assert len(items) == 1
    assert (items[0].date, items[0].time) == ("2025-12-20", None)


@pytest.mark.asyncio
async def test_calendar_update_by_id(db, project):
    pid = project.id
    item = CalendarItem(project_id=pid, title="Exam", date="2025-12-20", notified=True)
    db.add(item)
    await db.commit()
    item_id = item.id

    plan = _plan(calendar_items=[{"id": item_id, "title": "Final exam", "start_time": "2025-12-22T08:00:00Z"}])
    await AutonomyPlanApplier(db).apply(pid, plan, "auto")

    refreshed = (await db.execute(select(CalendarItem).where(CalendarItem.id == item_id))).scalar_one()
    assert (refreshed.title, refreshed.date, refreshed.time) == ("Final exam", "2025-12-22", "08:00:00")
    assert refreshed.notified is False


@pytest.mark.asyncio
async def test_generated_file_is_stored_and_recorded(db, project, blob_storage):
    pid = project.id
    plan = _plan(files=[{
        "filename": "Study Plan.md",
        "mime": "text/markdown",
        "content": "# Week 1",
        "description": "First week",
    }])
    await AutonomyPlanApplier(db, storage=blob_storage).apply(pid, plan, "auto")

    doc = (await db.execute(select(Document).where(Document.project_id == pid))).scalar_one()
    assert doc.file_name == "Study Plan.md"
    assert doc.file_url.startswith(f"http://test/files/projects/{pid}/ai/")
    assert doc.file_url.endswith("-study-plan-md")

    stored = list(Path(blob_storage.root).rglob("*-study-plan-md"))
    assert len(stored) == 1
    assert stored[0].read_text() == "# Week 1"

    events = await _events(db, pid)
    assert [(e.category, e.action) for e in events] == [(AutonomyCategory.FILES, AutonomyAction.GENERATE)]


@pytest.mark.asyncio
async def test_failed_file_upload_is_skipped(db, project):
    pid = project.id
    storage = FlakyStorage()
    plan = _plan(files=[
        {"filename": "a.txt", "content": "first"},
        {"filename": "b.txt", "content": "second"},
    ])
    await AutonomyPlanApplier(db, storage=storage).apply(pid, plan, "auto")

    docs = (await db.execute(select(Document.file_name).where(Document.project_id == pid))).scalars().all()
    assert docs == ["b.txt"]
    assert len(storage.blobs) == 1


def test_goal_update_without_description_is_kept():
    ops = plan_operations(_plan(long_term_goals=[{"id": "g1", "description": ""}, {"description": ""}]))
    assert len(ops) == 1
    assert isinstance(ops[0], UpdateGoal)
    assert ops[0].description == ""


@pytest.mark.asyncio
async def test_empty_goal_update_is_logged_in_shadow(db, project):
    pid = project.id
    await AutonomyPlanApplier(db).apply(pid, _plan(long_term_goals=[{"id": "abc", "description": ""}]), "shadow")

    [event] = await _events(db, pid)
    assert (event.category, event.action, event.applied) == (
        AutonomyCategory.LONG_GOALS,
        AutonomyAction.UPDATE,
        False,
    )
    assert event.payload["id"] == "abc"


@pytest.mark.asyncio
async def test_empty_goal_update_writes_description(db, project):
    pid = project.id
    goal = Goal(project_id=pid, goal_type=GoalType.LONG_TERM, description="Reach 1k students")
    db.add(goal)
    await db.commit()
    goal_id = goal.id

    await AutonomyPlanApplier(db).apply(pid, _plan(long_term_goals=[{"id": goal_id, "description": None}]), "auto")

    description = (await db.execute(select(Goal.description).where(Goal.id == goal_id))).scalar_one()
    assert description == ""
    assert len(await _events(db, pid)) == 1
