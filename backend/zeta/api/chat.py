"""
Chat API

One chat turn: onboarding shortcuts, calendar capture, assistant reply,
then onboarding step capture.
"""
from datetime import datetime, timezone
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.chat import ChatRequest, ChatResponse
from ..schemas.onboarding import CaptureFlags
from ..engine.onboarding import OnboardingEngine, next_step
from ..engine.extraction import OnboardingCapture
from ..engine.calendar_autonomy import CalendarAutonomy
from ..engine.reasoning import ReasoningEngine
from .projects import get_project_or_404
from ..tracer import trace_section, trace_input, trace_parse, trace_step, trace_output

router = APIRouter(prefix="/projects/{project_id}", tags=["chat"])


def _step_key(status: int, active: bool) -> str:
    step = next_step(status) if active else None
    return step.value if step else "complete"


@router.post("/chat", response_model=ChatResponse)
async def chat(
    project_id: str,
    data: ChatRequest,
    db: AsyncSession = Depends(get_db),
):
    """
    Chat with a project's assistant.

    This endpoint:
    1. Syncs onboarding status and handles skip / status questions
    2. Tries chat-triggered calendar capture
    3. Generates the assistant reply
    4. Captures the current onboarding step's data from the message
    """
    trace_section("Chat Request")
    trace_input("api.chat", "message", data.message)
    trace_input("api.chat", "project_id", project_id)

    project = await get_project_or_404(db, project_id)
    now = data.now or datetime.now(timezone.utc)

    # -- Onboarding state --
    onboarding = OnboardingEngine(db)
    active = await onboarding.should_use_onboarding(project_id)
    status = project.onboarding_status
    step = next_step(status) if active else None
    trace_parse("api.chat", f"onboarding active={active} status={status}", step)

    early = await onboarding.handle_early(
        project_id=project_id,
        message=data.message,
        onboarding_active=active,
        current_step=step,
        status=status,
    )
    if early.handled:
        trace_output("api.chat", "reply", early.reply)
        return ChatResponse(
            reply=early.reply,
            onboarding=early.onboarding,
            step=early.step,
            onboarding_status=early.onboarding_status,
            source="onboarding",
        )

    # -- Calendar capture --
    trace_section("Calendar Capture")
    calendar = await CalendarAutonomy(db).maybe_autonomous_calendar_add(
        project_id=project_id,
        message=data.message,
        now=now,
    )
    if calendar.handled:
        trace_output("api.chat", "reply", calendar.reply)
        return ChatResponse(
            reply=calendar.reply,
            onboarding=active,
            step=_step_key(status, active),
            onboarding_status=status,
            source="calendar",
        )

    # A declined capture may have rolled back the session, expiring `project`
    await db.refresh(project)

    # -- Assistant reply --
    trace_section("Response Generation")
    reply = await ReasoningEngine(db).generate_reply(
        project=project,
        message=data.message,
        now=now,
        onboarding_step=step,
    )

    captured = CaptureFlags()
    if active:
        trace_section("Onboarding Capture")
        capture = await OnboardingCapture(db).capture_step_data(
            project_id=project_id,
            status=status,
            message=data.message,
            text_content=reply,
            onboarding_active=True,
        )
        reply = capture.text_content
        captured = capture.captured
        status = max(capture.effective_status, await onboarding.sync(project_id))
        active = status < 4
        trace_step("api.chat", f"onboarding status after capture: {status}")

    trace_output("api.chat", "reply", reply)
    return ChatResponse(
        reply=reply,
        onboarding=active,
        step=_step_key(status, active),
        onboarding_status=status,
        source="assistant",
        captured=captured,
    )
