"""
Text assembly: the AGENTS.md preview, the generation prompt and the message
lists sent to the chat-completions endpoint.

Everything here is a pure string template; the same inputs always give the
same text.
"""

from config import (
    AI_USAGE,
    COLLABORATION,
    COMPLIANCE,
    NUDGE_LEVELS,
    PROJECT_TYPES,
    REMINDERS,
    REPO_VISIBILITY,
    RISK_AREAS,
    RISK_LABELS,
    SENSITIVITY,
    STORAGE,
    option_values,
)

GENERATION_SYSTEM_PROMPT = "You are a privacy configuration writer for AI coding assistants."

FOLLOWUP_SYSTEM_PROMPT = (
    "You are a helpful assistant conducting a brief interview to understand a software "
    "project's privacy context. Ask one concise follow-up question to gather more details "
    "about the project type, data sensitivity, collaboration model, or compliance "
    "requirements. Keep questions short and conversational."
)

REQUIRED_SECTIONS = [
    "# AGENTS: Project brief & safety rules",
    "## Context snapshot",
    "## Safety & privacy constraints",
    "## Allowed assistant roles",
    "## Restricted areas & files",
    "## Prompting patterns",
    "## Session checklist",
]

REFUSAL_RULES = [
    "Refusing to view, rewrite, or analyze credentials files.",
    "Refusing to infer, guess, or reconstruct API keys, tokens, or secret values.",
    "Refusing to request entire files when snippets suffice.",
    "Refusing to generate code that embeds real secrets.",
]

ALLOWED_AREAS = "frontend logic, utils/helpers, styling, non-sensitive backend code"
RESTRICTED_AREAS = (
    "authentication, authorization, database migrations, deployment files, "
    "secrets-handling modules"
)


def _bullets(items):
    return [f"- {x}" for x in items]


def build_preview(name, q, level, recs):
    """
    Human-readable outline of the brief.

    Shown on the review screen and embedded verbatim in the generation prompt.
    """
    flagged = q.data_examples.strip()
    return "\n".join(
        [
            f"# AGENTS brief · {name}",
            "",
            "## Context snapshot",
            f"- Project type: {q.project_type}",
            f"- Repo visibility: {q.repo_visibility}",
            f"- Sensitivity: {q.data_sensitivity}",
            f"- Highest-risk area: {q.highest_risk_area}",
            f"- Compliance anchors: {', '.join(q.compliance)}"
            if q.compliance
            else "- Compliance anchors: none noted",
            f"- Flagged assets: {flagged}"
            if flagged
            else "- Flagged assets: (add specifics as needed)",
            "",
            "## Agent guardrails",
            *_bullets(recs.guardrails),
            "",
            "## Session nudges",
            *_bullets(recs.reminder_bullets),
            "",
            f"> Risk posture: {RISK_LABELS[level]['title']}",
        ]
    )


def build_prompt(name, q, level, preview):
    """Instruction prompt for the final AGENTS.md generation call."""
    posture = RISK_LABELS[level]["title"]
    blurb = RISK_LABELS[level]["blurb"]
    flagged = q.data_examples.strip()
    has_compliance = bool(q.compliance) and "None" not in q.compliance
    return "\n".join(
        [
            f'Write a complete **AGENTS.md** file for a project called "{name}".',
            "",
            "The output must be ONLY a markdown document, no commentary, no code fences.",
            "",
            "### Project context to incorporate",
            f"- Project type: {q.project_type}",
            f"- Repository visibility: {q.repo_visibility}",
            f"- Data sensitivity: {q.data_sensitivity}",
            f"- Highest-risk area: {q.highest_risk_area}",
            f"- Flagged assets: {flagged}"
            if flagged
            else "- Flagged assets: none explicitly listed",
            f"- Compliance anchors: {', '.join(q.compliance)}"
            if has_compliance
            else "- Compliance anchors: none noted",
            f"- Storage locations: {', '.join(q.storage) or 'none'}",
            f"- Assistant usage: {q.ai_usage}",
            f"- Collaboration model: {q.collaboration}",
            f"- Risk posture: {posture} ({blurb})",
            "",
            "### Requirements",
            "- Structure the file with clear sections:",
            *[f"  - `{s}`" for s in REQUIRED_SECTIONS],
            "",
            "- The file must:",
            "  - Be strict about secrets, credentials, and high-risk areas.",
            "  - Use placeholders like `<API_KEY>` instead of real values.",
            "  - Inherit watchwords and guardrails from the context.",
            "  - Include a session checklist based on the reminders.",
            '- Include a dedicated section titled **"Refusal Rules"** that lists actions '
            "the assistant must politely refuse. This section must include:",
            *[f"  - {r}" for r in REFUSAL_RULES],
            '- Include a dedicated section titled **"Scope of Operation"** that clearly separates:',
            f"  - Allowed areas ({ALLOWED_AREAS})",
            f"  - Restricted areas ({RESTRICTED_AREAS})",
            "### Draft guidance to expand",
            preview,
            "",
            "Now write the full, polished AGENTS.md.",
        ]
    )


# --- Intake messages ------------------------------------------------------------------------------


def _choices(options):
    return " | ".join(f'"{v}"' for v in option_values(options))


def extraction_system_prompt():
    """
    System prompt asking for a JSON object in the questionnaire shape.

    Allowed values are read from the catalog so the prompt never drifts from
    what the validator accepts.
    """
    return "\n".join(
        [
            "You are a configuration extractor for a privacy tool that generates AGENTS.md "
            "for coding assistants. Output ONLY a valid JSON object with these keys, "
            "matching the allowed values as closely as possible:",
            "",
            "{",
            '  "projectName": string,',
            f'  "projectType": {_choices(PROJECT_TYPES)},',
            f'  "repoVisibility": {_choices(REPO_VISIBILITY)},',
            f'  "dataSensitivity": {_choices(SENSITIVITY)},',
            '  "dataExamples": string,',
            f'  "compliance": array of {_choices(COMPLIANCE)},',
            f'  "aiUsage": {_choices(AI_USAGE)},',
            f'  "collaboration": {_choices(COLLABORATION)},',
            f'  "nudgeLevel": {_choices(NUDGE_LEVELS)},',
            f'  "highestRiskArea": {_choices(RISK_AREAS)},',
            f'  "storage": array of {_choices(STORAGE)},',
            f'  "reminders": array of {_choices(REMINDERS)}',
            "}",
            "",
            "When you are unsure, make your best guess and choose reasonable defaults. "
            "Output JSON only, no markdown, no comments.",
        ]
    )


def format_transcript(messages):
    """Render chat messages as "Assistant: ..." / "User: ..." paragraphs."""
    return "\n\n".join(
        f"{'Assistant' if m.role == 'assistant' else 'User'}: {m.content}" for m in messages
    )


def build_generation_messages(prompt):
    return [
        {"role": "system", "content": GENERATION_SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]


def build_followup_messages(messages):
    return [{"role": "system", "content": FOLLOWUP_SYSTEM_PROMPT}] + [
        {"role": m.role, "content": m.content} for m in messages
    ]


def build_extraction_messages(source, text):
    """
    Message list for the structured extraction call.

    :param source: "conversation" for a chat transcript, "description" for a
        free-form project description
    :param text: the transcript or description
    """
    if source == "conversation":
        user = (
            "Here is a transcript of a conversation where the user describes their "
            f"project context. Infer the best configuration from it:\n\n{text}"
        )
    elif source == "description":
        user = f"Here is the user's project description:\n\n{text.strip()}"
    else:
        raise ValueError(f"Unknown extraction source: {source!r}")
    return [
        {"role": "system", "content": extraction_system_prompt()},
        {"role": "user", "content": user},
    ]
