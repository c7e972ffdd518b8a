"""
Reasoning Engine

Generates Zeta's conversational reply for a chat turn, grounded in the
project's vision, goals and onboarding state.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..models.project import Project
from ..llm import LLMProvider, LLMError, get_llm_provider, get_model_for_task
from ..prompts.response import RESPONSE_GENERATOR_SYSTEM, RESPONSE_GENERATOR_PROMPT
from .onboarding import OnboardingStep, step_label
from ..tracer import trace_call, trace_result

logger = logging.getLogger(__name__)

FALLBACK_REPLY = (
    "I apologize, but I encountered an error generating a response. Please try again."
)


def _format_goals(goals) -> str:
    if not goals:
        return "None yet."
    if isinstance(goals, str):
        return goals
    return "\n".join(f"- {g}" for g in goals)


class ReasoningEngine:
    """
    Reply generation.

    Provider failures never reach the caller; the user gets a short
    apology instead.
    """

    def __init__(self, db: AsyncSession, llm: Optional[LLMProvider] = None):
        self.db = db
        self._llm = llm

    @property
    def llm(self) -> LLMProvider:
        if self._llm is None:
            self._llm = get_llm_provider()
        return self._llm

    async def generate_reply(
        self,
        project: Project,
        message: str,
        now: datetime,
        onboarding_step: Optional[OnboardingStep] = None,
    ) -> str:
        """
        Generate a reply to a user message.

        Args:
            project: Project the conversation is bound to
            message: User's message
            now: Reference instant shown to the model
            onboarding_step: Active onboarding step, if any

        Returns:
            Reply text
        """
        onboarding = (
            f"active, current step: {step_label(onboarding_step)}"
            if onboarding_step is not None
            else "complete"
        )
        prompt = RESPONSE_GENERATOR_PROMPT.format(
            now=now.isoformat(),
            project_name=project.name,
            vision=project.vision or "Not defined",
            long_term_goals=_format_goals(project.long_term_goals),
            short_term_goals=_format_goals(project.short_term_goals),
            onboarding=onboarding,
            autonomy_policy=project.autonomy_policy or "default",
            message=message,
        )

        model = get_model_for_task("standard_response")
        try:
            trace_call("engine.reasoning", "LLM.generate_text", f"model={model}")
            text = await self.llm.generate_text(
                prompt=prompt,
                model=model,
                system_prompt=RESPONSE_GENERATOR_SYSTEM,
            )
            trace_result("engine.reasoning", "LLM.generate_text", True, text)
        except (LLMError, ValueError) as e:
            logger.error(f"Response generation failed: {e}")
            return FALLBACK_REPLY

        return text.strip() or FALLBACK_REPLY
