"""
Onboarding Extraction Prompts

Strict-JSON parsers that pull the datum for the current onboarding step
out of a free-form chat message.
"""

VISION_EXTRACTOR_SYSTEM = (
    "You are a strict JSON parser. Given the user message, decide if it clearly states the VISION for their project. "
    'Return JSON with exactly two keys: "has_vision" (boolean) and "vision" (string). '
    '"vision" must be a single clear sentence or short paragraph summarising what they want this project to achieve overall.'
)

LONG_TERM_GOALS_EXTRACTOR_SYSTEM = (
    "You are a strict JSON parser. Decide if the user stated one or more LONG-TERM goals (months/years). "
    'Return JSON with keys: "has_long_term_goals" (boolean) and "goals" (array of strings).'
)

SHORT_TERM_GOALS_EXTRACTOR_SYSTEM = (
    "You are a strict JSON parser. Decide if the user stated one or more SHORT-TERM goals "
    "(today/this week/next few weeks). "
    'Return JSON with keys: "has_short_term_goals" (boolean) and "goals" (array of strings).'
)

EXTRACTOR_PROMPT = '''User message:
"""{message}"""'''
