"""Onboarding status derivation, sync, skip and early handling."""
import pytest
from sqlalchemy import select

from zeta.engine.onboarding import (
    OnboardingEngine,
    OnboardingStep,
    next_step,
    step_index,
    step_prompt,
    count_items,
    status_from_data,
    status_from_logs,
)
from zeta.models.project import Project, MainframeInfo
from zeta.models.system_log import SystemLog, LogActor, LogEvent

from conftest import make_project


pytestmark = pytest.mark.asyncio


def _log(project_id, event, details=None):
    return SystemLog(
        project_id=project_id,
        actor=LogActor.USER,
        event=event,
        details=details or {},
    )


def _apply_data(project: Project, level: int) -> None:
    if level >= 1:
        project.vision = "Build a calculus tutor."
    if level >= 2:
        project.long_term_goals = ["Reach 1k students"]
    if level >= 3:
        project.short_term_goals = ["Ship the MVP"]
    if level >= 4:
        project.telegram_connected = True


def _logs_for(project_id: str, level: int) -> list:
    entries = []
    if level >= 1:
        entries.append(_log(project_id, LogEvent.PROJECT_VISION_UPDATE))
    if level >= 2:
        entries.append(_log(project_id, LogEvent.PROJECT_GOALS_LONG_UPDATE))
    if level >= 3:
        entries.append(_log(project_id, LogEvent.PROJECT_GOALS_SHORT_UPDATE))
    if level >= 4:
        entries.append(_log(project_id, LogEvent.API_CONNECT, {"provider": "Telegram", "status": "connected"}))
    return entries


class TestPureHelpers:

    async def test_next_step_table(self):
        assert next_step(0) == OnboardingStep.VISION
        assert next_step(1) == OnboardingStep.LONG_TERM_GOALS
        assert next_step(2) == OnboardingStep.SHORT_TERM_GOALS
        assert next_step(3) == OnboardingStep.TELEGRAM
        assert next_step(4) is None
        assert next_step(7) is None

    async def test_step_index(self):
        assert [step_index(s) for s in OnboardingStep] == [1, 2, 3, 4]

    async def test_count_items(self):
        assert count_items(["a", " ", "b", 3]) == 2
        assert count_items("- one\n- two\n• three") == 3
        assert count_items("") == 0
        assert count_items(None) == 0

    async def test_status_from_data_telegram_is_complete(self):
        project = Project(name="p", telegram_connected=True)
        assert status_from_data(project) == 4

    async def test_status_from_logs_ignores_other_providers(self):
        entries = [_log("p", LogEvent.API_CONNECT, {"provider": "Slack", "status": "connected"})]
        assert status_from_logs(entries) == 0


class TestDerive:

    @pytest.mark.parametrize("from_data", range(5))
    @pytest.mark.parametrize("from_logs", range(5))
    async def test_derive_takes_max_of_both_sources(self, db, from_data, from_logs):
        project = await make_project(db)
        _apply_data(project, from_data)
        for entry in _logs_for(project.id, from_logs):
            db.add(entry)
        await db.commit()

        status = await OnboardingEngine(db).derive(project.id)
        assert status == max(from_data, from_logs)

    async def test_telegram_log_requires_connected_status(self, db, project):
        db.add(_log(project.id, LogEvent.API_CONNECT, {"provider": "Telegram", "status": "disconnected"}))
        await db.commit()
        assert await OnboardingEngine(db).derive(project.id) == 0

    async def test_derive_does_not_write(self, db, project):
        project.vision = "Something."
        await db.commit()
        assert await OnboardingEngine(db).derive(project.id) == 1
        refreshed = await db.get(Project, project.id)
        assert refreshed.onboarding_status == 0

    async def test_derive_unknown_project(self, db):
        assert await OnboardingEngine(db).derive("missing") == 0


class TestSync:

    async def test_sync_is_idempotent(self, db, project, monkeypatch):
        project.vision = "Build a calculus tutor."
        await db.commit()

        commits = 0
        original_commit = db.commit

        async def counting_commit():
            nonlocal commits
            commits += 1
            await original_commit()

        monkeypatch.setattr(db, "commit", counting_commit)

        engine = OnboardingEngine(db)
        first = await engine.sync(project.id)
        second = await engine.sync(project.id)

        assert first == second == 1
        assert commits == 1

    async def test_sync_never_lowers_status(self, db):
        project = await make_project(db, onboarding_status=3)
        assert await OnboardingEngine(db).sync(project.id) == 3

        refreshed = await db.get(Project, project.id)
        assert refreshed.onboarding_status == 3

    async def test_sync_to_complete_sets_flags(self, db, project):
        project.telegram_connected = True
        await db.commit()

        assert await OnboardingEngine(db).sync(project.id) == 4

        mainframe = (await db.execute(
            select(MainframeInfo).where(MainframeInfo.project_id == project.id)
        )).scalar_one()
        assert mainframe.onboarding_complete is True
        assert (await db.get(Project, project.id)).onboarding_complete is True

        events = (await db.execute(
            select(SystemLog.event).where(SystemLog.project_id == project.id)
        )).scalars().all()
        assert LogEvent.ONBOARDING_COMPLETE in events


class TestSkipAndEarly:

    async def test_skip_short_term_goals_moves_to_telegram(self, db):
        project = await make_project(db, onboarding_status=2)
        engine = OnboardingEngine(db)

        result = await engine.handle_early(
            project_id=project.id,
            message="skip",
            onboarding_active=True,
            current_step=OnboardingStep.SHORT_TERM_GOALS,
            status=2,
        )

        assert result.handled
        assert result.onboarding_status == 3
        assert result.step == "telegram"
        assert result.onboarding is True
        assert step_prompt(OnboardingStep.TELEGRAM) in result.reply

        # Persisted immediately, and survives a later sync
        assert (await db.get(Project, project.id)).onboarding_status == 3
        assert await engine.sync(project.id) == 3

        skip_logs = (await db.execute(
            select(SystemLog).where(
                SystemLog.project_id == project.id,
                SystemLog.event == LogEvent.ONBOARDING_SKIP,
            )
        )).scalars().all()
        assert [log.details["step"] for log in skip_logs] == ["short_term_goals"]

    async def test_done_on_telegram_step_completes(self, db):
        project = await make_project(db, onboarding_status=3)

        result = await OnboardingEngine(db).handle_early(
            project_id=project.id,
            message="Done, it's connected",
            onboarding_active=True,
            current_step=OnboardingStep.TELEGRAM,
            status=3,
        )

        assert result.handled
        assert result.onboarding_status == 4
        assert result.step == "complete"
        assert result.onboarding is False

        mainframe = (await db.execute(
            select(MainframeInfo).where(MainframeInfo.project_id == project.id)
        )).scalar_one()
        assert mainframe.onboarding_complete is True

    async def test_done_on_other_steps_is_not_a_skip(self, db, project):
        result = await OnboardingEngine(db).handle_early(
            project_id=project.id,
            message="done",
            onboarding_active=True,
            current_step=OnboardingStep.VISION,
            status=0,
        )
        assert not result.handled

    async def test_skip_ignored_when_onboarding_inactive(self, db, project):
        result = await OnboardingEngine(db).handle_early(
            project_id=project.id,
            message="skip",
            onboarding_active=False,
            current_step=None,
            status=4,
        )
        assert not result.handled

    async def test_status_question(self, db, project):
        result = await OnboardingEngine(db).handle_early(
            project_id=project.id,
            message="which onboarding step am I on?",
            onboarding_active=True,
            current_step=OnboardingStep.LONG_TERM_GOALS,
            status=1,
        )
        assert result.handled
        assert "Long-term goals" in result.reply
        assert result.step == "long_term_goals"

    async def test_status_question_when_complete(self, db, project):
        result = await OnboardingEngine(db).handle_early(
            project_id=project.id,
            message="onboarding status?",
            onboarding_active=False,
            current_step=None,
            status=4,
        )
        assert result.handled
        assert "4/4" in result.reply

    async def test_should_use_onboarding(self, db, project):
        engine = OnboardingEngine(db)
        assert await engine.should_use_onboarding(project.id) is True

        await engine.mark_complete(project.id)
        assert await engine.should_use_onboarding(project.id) is False
