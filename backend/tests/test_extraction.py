"""Onboarding step capture with a scripted provider."""
import json

import pytest
from sqlalchemy import select

from zeta.engine.extraction import (
    OnboardingCapture,
    normalize_vision,
    passes_vision_gate,
    clean_goals,
    strip_stale_save_notices,
)
from zeta.engine.onboarding import OnboardingEngine, OnboardingStep, step_prompt
from zeta.llm import LLMError
from zeta.models.goal import Goal, GoalType
from zeta.models.project import Project, MainframeInfo
from zeta.models.system_log import SystemLog, LogEvent
from zeta.prompts.extractor import LONG_TERM_GOALS_EXTRACTOR_SYSTEM

from conftest import FakeLLM, make_project


VISION_MESSAGE = "My vision is to build an AI tutor that helps students learn calculus"


@pytest.mark.parametrize("raw,expected", [
    ('"the project aims to build a tutor"', "Build a tutor."),
    ("I want to ship it!", "Ship it!"),
    ("My project vision is to help people", "Help people."),
    ("to grow", "Grow."),
    ("   ", ""),
])
def test_normalize_vision(raw, expected):
    assert normalize_vision(raw) == expected


def test_vision_gate():
    assert passes_vision_gate(VISION_MESSAGE)
    assert not passes_vision_gate("my vision is short")
    assert not passes_vision_gate("x" * 60)


def test_clean_goals_strips_bullets_and_blanks():
    assert clean_goals(["- one", "• two", "* three", "", None, 4]) == ["one", "two", "three", "4"]


@pytest.mark.asyncio
async def test_long_term_goal_capture_advances_status(db):
    project = await make_project(db, vision="Build a tutor.", onboarding_status=1)
    llm = FakeLLM([json.dumps({"has_long_term_goals": True, "goals": ["Ship the MVP"]})])

    result = await OnboardingCapture(db, llm=llm).capture_step_data(
        project_id=project.id,
        status=1,
        message="my short-term goal is to ship the MVP this week",
    )

    # Status 1 means the long-term goals step is active
    assert llm.calls[0]["system_prompt"] == LONG_TERM_GOALS_EXTRACTOR_SYSTEM
    assert llm.calls[0]["json_mode"] is True

    assert result.captured.long_term_goals_captured
    assert result.effective_status == 2
    assert result.effective_next_step == "short_term_goals"
    assert step_prompt(OnboardingStep.SHORT_TERM_GOALS) in result.text_content

    goals = (await db.execute(select(Goal).where(Goal.project_id == project.id))).scalars().all()
    assert [(g.goal_type, g.description) for g in goals] == [(GoalType.LONG_TERM, "Ship the MVP")]

    refreshed = await db.get(Project, project.id)
    assert refreshed.long_term_goals == ["Ship the MVP"]
    assert refreshed.onboarding_status == 2
    assert await OnboardingEngine(db).derive(project.id) == 2

    events = (await db.execute(
        select(SystemLog.event).where(SystemLog.project_id == project.id)
    )).scalars().all()
    assert events == [LogEvent.PROJECT_GOALS_LONG_UPDATE]


@pytest.mark.asyncio
async def test_goal_capture_dedupes_against_existing_and_batch(db):
    project = await make_project(db, onboarding_status=2)
    db.add(Goal(project_id=project.id, goal_type=GoalType.SHORT_TERM, description="Ship the MVP"))
    await db.commit()

    llm = FakeLLM([json.dumps({
        "has_short_term_goals": True,
        "goals": ["- ship the  mvp", "Grow to 1k users", "grow to 1K users"],
    })])
    result = await OnboardingCapture(db, llm=llm).capture_step_data(project.id, 2, "this week: ship and grow")

    assert result.captured.short_term_goals_captured
    assert result.effective_status == 3

    descriptions = (await db.execute(
        select(Goal.description).where(Goal.project_id == project.id).order_by(Goal.created_at)
    )).scalars().all()
    assert sorted(descriptions) == ["Grow to 1k users", "Ship the MVP"]


@pytest.mark.asyncio
async def test_vision_capture(db, project):
    llm = FakeLLM([json.dumps({
        "has_vision": True,
        "vision": "the project aims to help students learn calculus",
    })])
    result = await OnboardingCapture(db, llm=llm).capture_step_data(project.id, 0, VISION_MESSAGE, "ignored")

    assert result.captured.vision_captured
    assert result.effective_status == 1
    assert result.text_content.startswith("Nice, I've saved that as your project vision.")
    assert "Next up: **Long-term goals**" in result.text_content

    refreshed = await db.get(Project, project.id)
    assert refreshed.vision == "Help students learn calculus."
    mainframe = (await db.execute(
        select(MainframeInfo).where(MainframeInfo.project_id == project.id)
    )).scalar_one()
    assert mainframe.vision == "Help students learn calculus."
    assert mainframe.current_date is not None


@pytest.mark.asyncio
async def test_vision_gate_skips_model_call(db, project):
    llm = FakeLLM()
    result = await OnboardingCapture(db, llm=llm).capture_step_data(project.id, 0, "hi there", "Hello!")

    assert llm.calls == []
    assert result.effective_status == 0
    assert result.text_content.startswith("Hello!")
    assert step_prompt(OnboardingStep.VISION) in result.text_content


@pytest.mark.asyncio
@pytest.mark.parametrize("llm", [
    FakeLLM(["this is not json"]),
    FakeLLM(['["a", "list"]']),
    FakeLLM([json.dumps({"has_long_term_goals": True, "goals": []})]),
    FakeLLM([json.dumps({"has_long_term_goals": False, "goals": ["Ship"]})]),
    FakeLLM([json.dumps({"goals": "not a list"})]),
    FakeLLM(error=LLMError("provider down")),
])
async def test_failed_extraction_captures_nothing(db, llm):
    project = await make_project(db, onboarding_status=1)

    result = await OnboardingCapture(db, llm=llm).capture_step_data(project.id, 1, "some goals", "Okay.")

    assert not result.captured.long_term_goals_captured
    assert result.effective_status == 1
    assert result.effective_next_step == "long_term_goals"
    assert result.text_content.startswith("Okay.")

    goals = (await db.execute(select(Goal).where(Goal.project_id == project.id))).scalars().all()
    assert goals == []
    assert (await db.get(Project, project.id)).onboarding_status == 1


@pytest.mark.asyncio
async def test_inactive_onboarding_adds_no_prompt(db):
    project = await make_project(db, onboarding_status=1)
    llm = FakeLLM([json.dumps({"has_long_term_goals": True, "goals": ["Ship"]})])

    result = await OnboardingCapture(db, llm=llm).capture_step_data(
        project.id, 1, "long term: ship", onboarding_active=False
    )
    assert result.effective_next_step is None
    assert "Next up" not in result.text_content


@pytest.mark.asyncio
async def test_no_capture_past_goal_steps(db):
    project = await make_project(db, onboarding_status=3)
    llm = FakeLLM()

    result = await OnboardingCapture(db, llm=llm).capture_step_data(project.id, 3, "anything")
    assert llm.calls == []
    assert result.effective_status == 3
    assert result.effective_next_step == "telegram"


def test_strip_stale_save_notices():
    text = (
        "Here's a plan.\n\n📌 I couldn't update your goals from here.\n\n---\n"
        "Next up: **Short-term goals**"
    )
    cleaned = strip_stale_save_notices(text)
    assert "📌" not in cleaned
    assert cleaned.startswith("Here's a plan.")
    assert cleaned.endswith("Next up: **Short-term goals**")

    assert strip_stale_save_notices(
        "Sure.\n\nIt looks like I can't save your project vision directly, please use settings."
    ) == "Sure."
    assert strip_stale_save_notices("It seems there was a problem updating your long-term goals.") == ""
    assert strip_stale_save_notices("Plain reply.\n\n\n\nMore.") == "Plain reply.\n\nMore."


@pytest.mark.asyncio
async def test_capture_drops_stale_notice_from_reply(db, project):
    result = await OnboardingCapture(db, llm=FakeLLM()).capture_step_data(
        project.id, 0, "hi", "Hello!\n\n📌 I can't save your vision here."
    )
    assert result.text_content.startswith("Hello!")
    assert "📌" not in result.text_content
    assert step_prompt(OnboardingStep.VISION) in result.text_content


@pytest.mark.asyncio
async def test_short_term_goals_mirror_to_mainframe(db):
    project = await make_project(db, onboarding_status=2, long_term_goals=["Reach 1k students"])
    llm = FakeLLM([json.dumps({"has_short_term_goals": True, "goals": ["Ship the MVP"]})])

    await OnboardingCapture(db, llm=llm).capture_step_data(project.id, 2, "this week: ship the MVP")

    refreshed = await db.get(Project, project.id)
    assert refreshed.short_term_goals == ["Ship the MVP"]
    assert refreshed.long_term_goals == ["Reach 1k students"]

    mainframe = (await db.execute(
        select(MainframeInfo).where(MainframeInfo.project_id == project.id)
    )).scalar_one()
    assert mainframe.short_term_goals == ["Ship the MVP"]
    assert mainframe.long_term_goals is None
