"""
Guidance derived from a questionnaire and its risk level.

Each rule is an independent predicate adding entries to focus areas,
guardrails or watchwords. Those three collections keep first-insertion order
and never hold duplicates. Reminder bullets are a separate ordered list.
"""

import logging

from config import NUDGE_BASELINES, NUDGE_LEVELS, REMINDER_PHRASES, REMINDERS, option_values
from models import Questionnaire, Recommendations

logger = logging.getLogger(__name__)

COMPLIANCE_WATCHWORDS = {
    "FERPA": "Student privacy",
    "HIPAA": "PHI handling",
    "Corporate NDA": "Client code names",
}


def _validate_config() -> None:
    bad_levels = [v for v in option_values(NUDGE_LEVELS) if v not in NUDGE_BASELINES]
    bad_reminders = [r for r in REMINDERS if r not in REMINDER_PHRASES]
    if bad_levels or bad_reminders:
        logger.error(
            "Reminder config incomplete: levels=%s reminders=%s", bad_levels, bad_reminders
        )
        raise ValueError(
            f"Reminder config incomplete: levels={bad_levels} reminders={bad_reminders}"
        )


_validate_config()


def build_reminder_bullets(nudge_level, reminders):
    """
    Session nudges for the chosen intensity followed by the user's reminders.

    User reminders are emitted in catalog order, whatever order they were
    selected in. Values without a phrase are skipped.

    :param nudge_level: "light", "balanced" or "intense"
    :param reminders: selected reminder option values
    :return: list of bullet strings
    """
    base = list(NUDGE_BASELINES.get(nudge_level, []))
    selected = set(reminders or ())
    unknown = selected.difference(REMINDERS)
    if unknown:
        logger.debug("Ignoring unknown reminders: %s", sorted(unknown))
    mapped = [REMINDER_PHRASES.get(r, "") for r in REMINDERS if r in selected]
    return [b for b in base + mapped if b]


def recommend(q: Questionnaire, level: str) -> Recommendations:
    focus_areas = []
    guardrails = []
    watchwords = []

    focus_areas.append("Air-gapped reviews" if level == "critical" else "Scoped sharing")

    if q.project_type == "coursework":
        focus_areas.append("Academic integrity proof")
        guardrails.append(
            "Document which code was AI-assisted to comply with coursework policies."
        )

    if q.project_type == "proprietary":
        guardrails.append(
            "Keep NDA modules out of default assistant context; rely on sanitized stubs."
        )
        watchwords.append("NDA scope")

    if q.data_sensitivity == "high":
        guardrails.append("Route assistant edits through redacted buffers before committing.")
        focus_areas.append("Least privilege prompts")
        watchwords.append("Redaction-first")

    if q.ai_usage == "autonomous":
        guardrails.append(
            "Require human diff approvals before merging assistant-authored commits."
        )
        watchwords.append("Human-in-loop")
    elif q.ai_usage == "paired":
        guardrails.append(
            "Log notable assistant suggestions and compare against privacy expectations weekly."
        )

    if "cloud-synced" in q.storage:
        guardrails.append(
            "Treat cloud-synced folders as shared; move sensitive edits to encrypted local storage."
        )

    if q.repo_visibility == "public":
        guardrails.append("Use minimized snippets instead of raw unreleased files when prompting.")

    for label, word in COMPLIANCE_WATCHWORDS.items():
        if label in q.compliance:
            watchwords.append(word)

    flagged = q.data_examples.strip()
    if flagged:
        guardrails.append(f"Flagged assets: {flagged}")

    return Recommendations(
        focus_areas=tuple(dict.fromkeys(focus_areas)),
        guardrails=tuple(dict.fromkeys(guardrails)),
        watchwords=tuple(dict.fromkeys(watchwords)),
        reminder_bullets=tuple(build_reminder_bullets(q.nudge_level, q.reminders)),
    )
