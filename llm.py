"""
Chat-completions client and reply parsing.

One attempt per call, no retries. Failures raise a `BriefServiceError`
subclass carrying a user-facing message; callers turn it into an error state.
"""

from __future__ import annotations

import json
import logging

import requests
from pydantic import ValidationError

from config import Settings, load_settings
from models import Questionnaire

logger = logging.getLogger(__name__)

DEFAULT_FAILURE = "OpenAI request failed."


class BriefServiceError(Exception):
    """Base class for recoverable failures of an external call."""

    kind = "transport"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(BriefServiceError):
    kind = "configuration"


class GenerationError(BriefServiceError):
    """Non-success status, undecodable body or empty content."""

    def __init__(self, message: str, kind: str = "transport"):
        super().__init__(message)
        self.kind = kind


class ExtractionParseError(BriefServiceError):
    kind = "parse"


def _error_message(response) -> str:
    """Best-effort `error.message` lookup on a failed response."""
    try:
        payload = response.json()
    except ValueError:
        return DEFAULT_FAILURE
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return DEFAULT_FAILURE


def chat_completion(messages, model, temperature, settings: Settings | None = None) -> str:
    """
    POST a role-tagged message list and return the trimmed reply text.

    Args:
        messages (list): [{"role": ..., "content": ...}, ...]
        model (str): model identifier
        temperature (float): sampling temperature
        settings (Settings, optional): defaults to `load_settings()`

    Returns:
        str: `choices[0].message.content`, stripped

    Raises:
        ConfigurationError: no API key configured
        GenerationError: transport failure, non-2xx status, malformed body or
            empty content
    """
    settings = settings or load_settings()
    if not settings.api_key:
        raise ConfigurationError(
            "Missing OpenAI API key. Add OPENAI_API_KEY to your .env file and reload."
        )

    logger.info("Calling %s with %d messages", model, len(messages))
    try:
        response = requests.post(
            f"{settings.base_url}/chat/completions",
            headers={
                "Authorization": f"Bearer {settings.api_key}",
                "Content-Type": "application/json",
            },
            json={"model": model, "temperature": temperature, "messages": messages},
            timeout=settings.timeout,
        )
    except requests.RequestException as e:
        logger.warning("Chat completion transport error: %s", e)
        raise GenerationError(DEFAULT_FAILURE) from e

    if not response.ok:
        message = _error_message(response)
        logger.warning("Chat completion failed with status %s: %s", response.status_code, message)
        raise GenerationError(message)

    try:
        data = response.json()
    except ValueError as e:
        raise GenerationError("OpenAI returned a malformed response.") from e

    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        content = None
    content = content.strip() if isinstance(content, str) else ""
    if not content:
        raise GenerationError("OpenAI returned no content.", kind="content")
    return content


def extract_json_object(text: str) -> dict:
    """
    Decode the first JSON object embedded in `text`.

    Surrounding prose and markdown code fences are skipped: decoding is tried
    at each "{" in turn and the first position yielding a complete object
    wins.

    Raises:
        ExtractionParseError: no decodable JSON object in the text
    """
    decoder = json.JSONDecoder()
    start = text.find("{") if text else -1
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, dict):
            return value
        start = text.find("{", start + 1)
    raise ExtractionParseError("Could not read a configuration from the assistant's reply.")


def parse_inferred_config(text: str) -> dict:
    """
    Extract a partial questionnaire from an extraction reply.

    Only known fields with valid values are kept, keyed by their camelCase
    names. Unknown keys and invalid values are dropped, so the result always
    merges cleanly onto defaults.
    """
    raw = extract_json_object(text)
    aliases = {name: info.alias or name for name, info in Questionnaire.model_fields.items()}
    names = {alias: name for name, alias in aliases.items()}
    names.update({name: name for name in aliases})

    partial = {}
    for key, value in raw.items():
        name = names.get(key)
        if name is None:
            logger.info("Dropping unknown inferred field %r", key)
            continue
        if value is None:
            continue
        try:
            checked = Questionnaire.model_validate({name: value})
        except ValidationError:
            logger.warning("Dropping invalid inferred value %r for %s", value, key)
            continue
        alias = aliases[name]
        partial[alias] = checked.to_json()[alias]
    return partial


# kind -> (settings attribute holding the model, temperature)
CALL_PROFILES = {
    "generate": ("generation_model", 0.2),
    "followup": ("intake_model", 0.7),
    "extract": ("intake_model", 0.2),
}


def run_effect(effect: dict, settings: Settings | None = None) -> dict:
    """
    Execute an effect request and describe the outcome.

    Never raises for service failures; they come back as `ok=False` with a
    message and an `error_kind` so the session can show them.
    """
    settings = settings or load_settings()
    model_attr, temperature = CALL_PROFILES[effect["kind"]]
    result = {"kind": effect["kind"], "token": effect["token"]}
    try:
        content = chat_completion(
            effect["messages"], getattr(settings, model_attr), temperature, settings
        )
    except BriefServiceError as e:
        logger.warning("%s call failed (%s): %s", effect["kind"], e.kind, e.message)
        return {**result, "ok": False, "error": e.message, "error_kind": e.kind}
    return {**result, "ok": True, "content": content}
