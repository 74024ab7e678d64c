# --- Configuration --------------------------------------------------------------------------------

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

PROJECT_TYPES = [
    {
        "label": "Coursework",
        "value": "coursework",
        "helper": "Assignments, capstones, or teaching repos.",
    },
    {
        "label": "Research",
        "value": "research",
        "helper": "Pre-publication or IRB-sensitive projects.",
    },
    {
        "label": "Proprietary",
        "value": "proprietary",
        "helper": "Corporate or client-owned source with NDAs.",
    },
    {
        "label": "Personal",
        "value": "personal",
        "helper": "Portfolios, side projects, or experiments.",
    },
]

REPO_VISIBILITY = [
    {"label": "Private / invite-only", "value": "private"},
    {"label": "Public / shared openly", "value": "public"},
    {"label": "Air-gapped / offline", "value": "air-gapped"},
]

SENSITIVITY = [
    {"label": "Low", "value": "low", "helper": "Mostly boilerplate or published code."},
    {"label": "Medium", "value": "medium", "helper": "Mixed assets with occasional secrets."},
    {"label": "High", "value": "high", "helper": "Strict controls, regulated or embargoed."},
]

AI_USAGE = [
    {
        "label": "Sparingly (spot prompts)",
        "value": "sparingly",
        "helper": "Copy edits, doc rewrites, quick fixes.",
    },
    {
        "label": "Paired (co-editing)",
        "value": "paired",
        "helper": "Frequent completions with human review.",
    },
    {
        "label": "Autonomous (hands-off)",
        "value": "autonomous",
        "helper": "Assistant drives refactors or file creation.",
    },
]

COLLABORATION = [
    {"label": "Solo builder", "value": "solo"},
    {"label": "Small distributed team", "value": "small-team"},
    {"label": "Cross-organization collab", "value": "cross-org"},
]

NUDGE_LEVELS = [
    {
        "label": "Light touch",
        "value": "light",
        "helper": "Only surface nudges when something looks risky.",
    },
    {
        "label": "Balanced",
        "value": "balanced",
        "helper": "Steady reminders at session boundaries.",
    },
    {
        "label": "High-touch",
        "value": "intense",
        "helper": "Frequent prompts to double-check privacy posture.",
    },
]

COMPLIANCE = ["FERPA", "HIPAA", "Corporate NDA", "Internal policy", "None"]
STORAGE = ["local-encrypted", "local-plain", "cloud-synced", "shared-drive"]
REMINDERS = [
    "session-audits",
    "data-minimization",
    "delete-after-export",
    "manual-redaction",
]
RISK_AREAS = ["source code", "datasets", "credentials", "documentation"]

RISK_LEVELS = ["low", "guarded", "elevated", "critical"]

RISK_LABELS = {
    "low": {
        "title": "Low exposure",
        "blurb": "Context is contained; keep lightweight checklists in place.",
    },
    "guarded": {
        "title": "Guarded posture",
        "blurb": "Blend of sensitive and public files. Audit sharing each session.",
    },
    "elevated": {
        "title": "Elevated risk",
        "blurb": "Multiple collaborators or regulated data. Default to opt-in access.",
    },
    "critical": {
        "title": "Critical controls required",
        "blurb": "Strict NDAs or embargoed datasets. Treat AI as read-only until vetted.",
    },
}

# Survey order; one screen per entry, review stage follows the last one.
QUESTION_ORDER = [
    "projectName",
    "projectType",
    "repoVisibility",
    "dataSensitivity",
    "highestRiskArea",
    "dataExamples",
    "compliance",
    "aiUsage",
    "collaboration",
    "storage",
    "reminders",
    "nudgeLevel",
]

STEP_META = {
    "projectName": {
        "title": "What should we call this project?",
        "helper": "Used inside the generated AGENTS.md to ground the assistant.",
        "summary": "Project label",
    },
    "projectType": {
        "title": "Which bucket best describes it?",
        "helper": "Privacy expectations differ across coursework, research, proprietary, and personal work.",
        "summary": "Project type",
    },
    "repoVisibility": {
        "title": "How discoverable is the repo today?",
        "helper": "We tune prompts depending on whether code is public, private, or air-gapped.",
        "summary": "Repo exposure",
    },
    "dataSensitivity": {
        "title": "How sensitive is the data/code inside?",
        "helper": "Dictates how opinionated the guardrails should be.",
        "summary": "Data sensitivity",
    },
    "highestRiskArea": {
        "title": "What deserves the most protection?",
        "helper": "We spotlight this in the generated reminders.",
        "summary": "Highest-risk asset",
    },
    "dataExamples": {
        "title": "List any specific files or datasets that feel risky.",
        "helper": "Optional but helps the assistant ignore or summarize safely.",
        "summary": "Flagged artifacts",
    },
    "compliance": {
        "title": "Any policies, regulations, or agreements in play?",
        "helper": "Select all that apply so we can echo them back.",
        "summary": "Compliance anchors",
    },
    "aiUsage": {
        "title": "How hands-on will the assistant be?",
        "helper": "The more autonomy it has, the stricter the review reminders.",
        "summary": "Assistant role",
    },
    "collaboration": {
        "title": "Who else touches this repo?",
        "helper": "Signals how widely context may spread.",
        "summary": "Collaboration",
    },
    "storage": {
        "title": "Where does your code live?",
        "helper": "Storage location impacts leakage risk and guardrail strictness.",
        "summary": "Storage",
    },
    "reminders": {
        "title": "What should the assistant remind you about?",
        "helper": "These shape the Session Nudges section of AGENTS.md.",
        "summary": "Privacy nudges",
    },
    "nudgeLevel": {
        "title": "How intense should the privacy nudges be?",
        "helper": "Pick how frequently you want reminders during assistant sessions.",
        "summary": "Nudge intensity",
    },
}

# Session nudge boilerplate per nudge level, emitted before user reminders.
NUDGE_BASELINES = {
    "light": [
        "Ping me only when sensitive folders enter the assistant context.",
        "Provide a single exit reminder to clear temp buffers.",
    ],
    "balanced": [
        "At session start, list the directories you intend to expose.",
        "Close the loop by summarizing how assistant output was reviewed.",
    ],
    "intense": [
        "Before each prompt, confirm the file truly needs to be shared.",
        "Log every directory you expose and share the log weekly.",
        "Run a manual redaction sweep before committing generated code.",
    ],
}

REMINDER_PHRASES = {
    "session-audits": "Log each assistant session + files exposed.",
    "data-minimization": "Only send minimal diffs or snippets.",
    "delete-after-export": "Purge temporary exports after review.",
    "manual-redaction": "Run a manual redaction sweep before sharing data.",
}

OPENING_QUESTION = (
    "Tell me about your project in a few sentences. "
    "What does it do, who uses it, and what feels risky?"
)

# Follow-up questions the assistant may ask in the conversational intake.
MAX_ASSISTANT_QUESTIONS = 3


def option_values(options):
    """
    Return the plain values of an option list.

    Accepts both the labelled form ({"label", "value"}) and bare strings.
    """
    return [o["value"] if isinstance(o, dict) else o for o in options]


# --- Runtime settings -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Settings:
    api_key: str
    base_url: str
    generation_model: str
    intake_model: str
    timeout: float
    log_level: str


DEFAULT_TIMEOUT = 60.0


def _timeout_from_env() -> float:
    raw = os.environ.get("OPENAI_TIMEOUT")
    if raw is None or not raw.strip():
        return DEFAULT_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        value = 0.0
    if not value > 0:
        logger.warning("Invalid OPENAI_TIMEOUT %r; using %s seconds", raw, DEFAULT_TIMEOUT)
        return DEFAULT_TIMEOUT
    return value


def load_settings() -> Settings:
    """
    Read runtime settings from the environment, loading `.env` first.

    A missing API key is not an error here; the client reports it when a call
    is attempted so the UI can surface it without crashing.
    """
    load_dotenv()
    return Settings(
        api_key=os.environ.get("OPENAI_API_KEY") or os.environ.get("OPENAI_KEY") or "",
        base_url=os.environ.get("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip("/"),
        generation_model=os.environ.get("GENERATION_MODEL", "gpt-4.1-mini"),
        intake_model=os.environ.get("INTAKE_MODEL", "gpt-4o-mini"),
        timeout=_timeout_from_env(),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )
