"""
Follow-Through Tracer

Structured step-by-step execution tracing for a chat turn.
Shows how a message moves through onboarding, calendar capture and
autonomy plan application when FOLLOW_THROUGH=true.
"""
import logging
from typing import Any
from datetime import datetime

from .config import settings

# Dedicated logger for follow-through tracing
tracer = logging.getLogger("followthrough")


def _preview(data: Any, max_len: int = 50) -> str:
    """Create a short preview of data."""
    if data is None:
        return "<None>"
    text = str(data)
    if len(text) > max_len:
        return f"{text[:max_len]}..."
    return text


def _format_step(icon: str, step: str, module: str, detail: str = "") -> str:
    """Format a trace step with consistent styling."""
    timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    base = f"[{timestamp}] {icon} [{module}] {step}"
    if detail:
        return f"{base}: {detail}"
    return base


def trace_input(module: str, input_name: str, value: Any):
    """Log an input value entering a module."""
    if not settings.follow_through:
        return
    tracer.info(_format_step("→", f"INPUT {input_name}", module, _preview(value)))


def trace_parse(module: str, description: str, parsed_value: Any = None):
    """Log how input was parsed/interpreted."""
    if not settings.follow_through:
        return
    msg = description
    if parsed_value is not None:
        msg += f" => {_preview(parsed_value)}"
    tracer.info(_format_step("⚙", "PARSED", module, msg))


def trace_call(module: str, function: str, args_preview: str = ""):
    """Log that a function is being called."""
    if not settings.follow_through:
        return
    detail = f"calling {function}()"
    if args_preview:
        detail += f" with {args_preview}"
    tracer.info(_format_step("▶", "CALL", module, detail))


def trace_result(module: str, function: str, success: bool, result_preview: Any = None):
    """Log the result of a function call."""
    if not settings.follow_through:
        return
    status = "✓ SUCCESS" if success else "✗ FAILED"
    detail = f"{function}() {status}"
    if result_preview is not None:
        detail += f" => {_preview(result_preview)}"
    tracer.info(_format_step("◀", "RESULT", module, detail))


def trace_step(module: str, description: str):
    """Log a general step in processing."""
    if not settings.follow_through:
        return
    tracer.info(_format_step("•", "STEP", module, description))


def trace_output(module: str, output_name: str, value: Any):
    """Log an output value leaving a module."""
    if not settings.follow_through:
        return
    tracer.info(_format_step("←", f"OUTPUT {output_name}", module, _preview(value)))


def trace_section(title: str):
    """Log a section divider for major chat-turn stages."""
    if not settings.follow_through:
        return
    bar = "─" * 40
    tracer.info(f"\n{bar}")
    tracer.info(f"  {title.upper()}")
    tracer.info(f"{bar}")


def setup_follow_through_logging():
    """Configure the follow-through logger."""
    if settings.follow_through:
        handler = logging.StreamHandler()
        handler.setLevel(logging.INFO)
        handler.setFormatter(logging.Formatter('%(message)s'))

        tracer.addHandler(handler)
        tracer.setLevel(logging.INFO)
        tracer.propagate = False  # Don't propagate to root logger

        tracer.info("\n" + "=" * 50)
        tracer.info("  FOLLOW-THROUGH MODE ENABLED")
        tracer.info("  Tracing chat turns...")
        tracer.info("=" * 50 + "\n")
