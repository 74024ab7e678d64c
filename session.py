"""
Session state and the reducers that move it.

A `Session` is an immutable snapshot of one user's flow. Every user action is
a function `(session, ...) -> session`; actions that need the network return
`(session, effect)` where `effect` describes the call to make. Results come
back through `receive_result`, which drops anything whose token no longer
matches the pending request of its kind.
"""

from __future__ import annotations

import logging
from typing import Literal, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from config import MAX_ASSISTANT_QUESTIONS, OPENING_QUESTION, QUESTION_ORDER
from documents import (
    build_extraction_messages,
    build_followup_messages,
    build_generation_messages,
    build_preview,
    build_prompt,
    format_transcript,
)
from llm import ExtractionParseError, parse_inferred_config
from models import ChatMessage, Questionnaire, Recommendations, RiskAssessment
from recommendations import recommend
from scoring import assess

logger = logging.getLogger(__name__)

Mode = Literal["landing", "survey", "conversation", "description", "result"]
CallStatus = Literal["idle", "loading", "success", "error"]

INTAKE_MODES = ("survey", "conversation", "description")
REVIEW_STEP = len(QUESTION_ORDER)
MULTI_SELECT_FIELDS = ("compliance", "storage", "reminders")


class Session(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: Mode = "landing"
    step: int = 0
    questionnaire: Questionnaire = Field(default_factory=Questionnaire)

    generation_status: CallStatus = "idle"
    generation_error: str = ""
    document: str = ""

    messages: tuple[ChatMessage, ...] = (
        ChatMessage(role="assistant", content=OPENING_QUESTION),
    )
    followups_asked: int = 0
    description: str = ""
    extraction_status: CallStatus = "idle"
    extraction_error: str = ""
    inferred: Optional[dict] = None

    # effect kind -> token of the request in flight
    pending: dict[str, str] = Field(default_factory=dict)
    epoch: int = 0

    def to_store(self) -> dict:
        return self.model_dump(mode="json")

    @classmethod
    def from_store(cls, data) -> "Session":
        if not data:
            return cls()
        return cls.model_validate(data)

    def is_pending(self, kind: str) -> bool:
        return kind in self.pending


class Brief(NamedTuple):
    name: str
    assessment: RiskAssessment
    recommendations: Recommendations
    preview: str
    prompt: str


def build_brief(q: Questionnaire) -> Brief:
    """Score, recommend, preview and prompt for one questionnaire."""
    name = q.display_name
    assessment = assess(q)
    recs = recommend(q, assessment.level)
    preview = build_preview(name, q, assessment.level, recs)
    prompt = build_prompt(name, q, assessment.level, preview)
    return Brief(name, assessment, recs, preview, prompt)


def may_ask_followup(asked: int) -> bool:
    return asked < MAX_ASSISTANT_QUESTIONS


def _with_effect(session: Session, kind: str, messages):
    epoch = session.epoch + 1
    token = f"{kind}-{epoch}"
    pending = {**session.pending, kind: token}
    effect = {"kind": kind, "token": token, "messages": messages}
    return session.model_copy(update={"epoch": epoch, "pending": pending}), effect


def _settle(session: Session, kind: str) -> dict:
    return {k: v for k, v in session.pending.items() if k != kind}


# --- Navigation -----------------------------------------------------------------------------------


def start(session: Session, mode: str) -> Session:
    """Fresh flow in `mode`; answers and in-flight calls are discarded."""
    if mode not in INTAKE_MODES:
        raise ValueError(f"Unknown intake mode: {mode!r}")
    return Session(mode=mode, epoch=session.epoch)


def restart(session: Session) -> Session:
    mode = session.mode if session.mode in INTAKE_MODES else "survey"
    return start(session, mode)


def return_to_landing(session: Session) -> Session:
    return Session(epoch=session.epoch)


def next_step(session: Session) -> Session:
    return session.model_copy(update={"step": min(session.step + 1, REVIEW_STEP)})


def previous_step(session: Session) -> Session:
    """
    Step back one question.

    Leaving the review stage settles any generation in flight, so a late
    result cannot open the result screen over edited answers.
    """
    update = {"step": max(session.step - 1, 0)}
    if session.step == REVIEW_STEP:
        update.update(
            pending=_settle(session, "generate"),
            generation_status="idle",
            generation_error="",
        )
    return session.model_copy(update=update)


def edit_answers(session: Session) -> Session:
    """Leave the result screen for the review stage, keeping the answers."""
    return session.model_copy(
        update={
            "mode": "survey",
            "step": REVIEW_STEP,
            "document": "",
            "generation_status": "idle",
            "generation_error": "",
            "pending": _settle(session, "generate"),
        }
    )


# --- Answers --------------------------------------------------------------------------------------


def _field_name(key: str) -> str:
    for name, info in Questionnaire.model_fields.items():
        if key in (name, info.alias):
            return name
    raise KeyError(key)


def _replace(session: Session, name: str, value) -> Session:
    data = session.questionnaire.model_dump()
    data[name] = value
    try:
        q = Questionnaire.model_validate(data)
    except ValidationError:
        logger.warning("Ignoring invalid value %r for %s", value, name)
        return session
    if q == session.questionnaire:
        return session
    return session.model_copy(update={"questionnaire": q})


def set_answer(session: Session, key: str, value) -> Session:
    """
    Replace one answer.

    For multi-select fields the new selection keeps the order in which items
    were first picked: surviving items stay in place, new ones are appended.
    """
    name = _field_name(key)
    if name in MULTI_SELECT_FIELDS:
        chosen = list(value or [])
        current = getattr(session.questionnaire, name)
        value = [v for v in current if v in chosen] + [v for v in chosen if v not in current]
    elif value is None:
        value = Questionnaire.model_fields[name].default
    return _replace(session, name, value)


def toggle_option(session: Session, key: str, option: str) -> Session:
    name = _field_name(key)
    if name not in MULTI_SELECT_FIELDS:
        raise ValueError(f"{key} is not a multi-select field")
    current = getattr(session.questionnaire, name)
    if option in current:
        value = [v for v in current if v != option]
    else:
        value = list(current) + [option]
    return _replace(session, name, value)


# --- Generation -----------------------------------------------------------------------------------


def begin_generation(session: Session):
    """
    Request the AGENTS.md generation call.

    A no-op while a generation call is already in flight.
    """
    if session.is_pending("generate"):
        return session, None
    brief = build_brief(session.questionnaire)
    session = session.model_copy(
        update={"generation_status": "loading", "generation_error": ""}
    )
    return _with_effect(session, "generate", build_generation_messages(brief.prompt))


# --- Conversational intake ------------------------------------------------------------------------


def send_message(session: Session, text: str):
    """
    Append a user message; ask a follow-up while under the question cap.

    Ignored for blank text or while a follow-up is still being written.
    """
    text = (text or "").strip()
    if not text or session.is_pending("followup"):
        return session, None
    messages = session.messages + (ChatMessage(role="user", content=text),)
    session = session.model_copy(update={"messages": messages})
    if not may_ask_followup(session.followups_asked):
        return session, None
    return _with_effect(session, "followup", build_followup_messages(messages))


def request_extraction(session: Session):
    """Send the whole transcript for structured extraction."""
    if session.is_pending("extract"):
        return session, None
    if not any(m.role == "user" for m in session.messages):
        return (
            session.model_copy(
                update={
                    "extraction_status": "error",
                    "extraction_error": "Share a few details about your project first.",
                }
            ),
            None,
        )
    session = session.model_copy(
        update={"extraction_status": "loading", "extraction_error": ""}
    )
    transcript = format_transcript(session.messages)
    return _with_effect(
        session, "extract", build_extraction_messages("conversation", transcript)
    )


# --- Description intake ---------------------------------------------------------------------------


def request_inference(session: Session, description: str):
    """Send a free-form project description for structured extraction."""
    if session.is_pending("extract"):
        return session, None
    description = description or ""
    session = session.model_copy(update={"description": description})
    if not description.strip():
        return (
            session.model_copy(
                update={
                    "extraction_status": "error",
                    "extraction_error": "Please enter a project description.",
                }
            ),
            None,
        )
    session = session.model_copy(
        update={"extraction_status": "loading", "extraction_error": "", "inferred": None}
    )
    return _with_effect(
        session, "extract", build_extraction_messages("description", description)
    )


def apply_inferred(session: Session):
    """
    Replace the questionnaire with the inferred configuration over defaults.

    From the conversation this also starts generation; from a description it
    stops at the review stage.
    """
    if session.inferred is None:
        return session, None
    q = Questionnaire.model_validate(session.inferred)
    source = session.mode
    session = session.model_copy(
        update={"questionnaire": q, "mode": "survey", "step": REVIEW_STEP}
    )
    if source == "conversation":
        return begin_generation(session)
    return session, None


# --- Results --------------------------------------------------------------------------------------


def receive_result(session: Session, result: dict) -> Session:
    """
    Fold an effect result into the session.

    Results for a request that is no longer pending (restart, navigation,
    superseded call) are dropped.
    """
    kind = result.get("kind")
    token = result.get("token")
    if not kind or session.pending.get(kind) != token:
        logger.info("Dropping stale %s result %s", kind, token)
        return session

    pending = _settle(session, kind)
    ok = result.get("ok", False)
    content = result.get("content") or ""
    error = result.get("error") or "Request failed."

    if kind == "generate":
        if ok:
            return session.model_copy(
                update={
                    "pending": pending,
                    "generation_status": "success",
                    "document": content,
                    "mode": "result",
                }
            )
        return session.model_copy(
            update={"pending": pending, "generation_status": "error", "generation_error": error}
        )

    if kind == "followup":
        if not ok or not content:
            logger.warning("Follow-up question failed: %s", error)
            return session.model_copy(update={"pending": pending})
        return session.model_copy(
            update={
                "pending": pending,
                "messages": session.messages + (ChatMessage(role="assistant", content=content),),
                "followups_asked": session.followups_asked + 1,
            }
        )

    if kind == "extract":
        if ok:
            try:
                inferred = parse_inferred_config(content)
            except ExtractionParseError as e:
                logger.warning("Extraction reply held no JSON object")
                return session.model_copy(
                    update={
                        "pending": pending,
                        "extraction_status": "error",
                        "extraction_error": e.message,
                    }
                )
            return session.model_copy(
                update={"pending": pending, "extraction_status": "success", "inferred": inferred}
            )
        return session.model_copy(
            update={"pending": pending, "extraction_status": "error", "extraction_error": error}
        )

    logger.error("Unknown effect kind %r", kind)
    return session.model_copy(update={"pending": pending})
