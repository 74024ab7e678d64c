"""
Risk scoring.

The score starts at 1, adds one weighted contribution per answered factor and
is clamped to [1, 8]. The level is a banding of the score.
"""

import logging

import pandas as pd

from config import (
    AI_USAGE,
    COLLABORATION,
    PROJECT_TYPES,
    REPO_VISIBILITY,
    SENSITIVITY,
    option_values,
)
from models import Questionnaire, RiskAssessment

logger = logging.getLogger(__name__)

BASE_SCORE = 1
MIN_SCORE = 1
MAX_SCORE = 8

SENSITIVITY_WEIGHT = {"low": 0, "medium": 1, "high": 2}
PROJECT_WEIGHT = {"coursework": 0, "personal": 0, "research": 1, "proprietary": 2}
AI_WEIGHT = {"sparingly": 0, "paired": 1, "autonomous": 2}
VISIBILITY_WEIGHT = {"private": 0, "public": 1, "air-gapped": -1}
COLLABORATION_WEIGHT = {"solo": 0, "small-team": 1, "cross-org": 2}

SHARED_STORAGE = ("cloud-synced", "shared-drive")

# (weight table, catalog options) pairs checked at import time.
_WEIGHT_TABLES = {
    "dataSensitivity": (SENSITIVITY_WEIGHT, SENSITIVITY),
    "projectType": (PROJECT_WEIGHT, PROJECT_TYPES),
    "aiUsage": (AI_WEIGHT, AI_USAGE),
    "repoVisibility": (VISIBILITY_WEIGHT, REPO_VISIBILITY),
    "collaboration": (COLLABORATION_WEIGHT, COLLABORATION),
}


def _validate_config() -> None:
    """
    Check that every catalog value has a scoring weight.

    Raises ValueError naming the fields and values without a weight.
    """
    missing = {
        field: [v for v in option_values(options) if v not in table]
        for field, (table, options) in _WEIGHT_TABLES.items()
    }
    missing = {field: values for field, values in missing.items() if values}
    if missing:
        logger.error("Scoring weights missing for %s", missing)
        raise ValueError(f"Scoring weights missing for {missing}")


_validate_config()


def _has_compliance(q: Questionnaire) -> bool:
    return any(c != "None" for c in q.compliance)


def _has_shared_storage(q: Questionnaire) -> bool:
    return any(s in q.storage for s in SHARED_STORAGE)


def score_breakdown(q: Questionnaire) -> pd.DataFrame:
    """
    Per-factor contributions to the risk score.

    :param q: a questionnaire
    :return: DataFrame with columns "factor", "answer" and "points"; the sum of
        "points" is the unclamped score
    """
    rows = [
        {"factor": "Base", "answer": "", "points": BASE_SCORE},
        {
            "factor": "Data sensitivity",
            "answer": q.data_sensitivity,
            "points": SENSITIVITY_WEIGHT[q.data_sensitivity],
        },
        {
            "factor": "Project type",
            "answer": q.project_type,
            "points": PROJECT_WEIGHT[q.project_type],
        },
        {
            "factor": "Assistant usage",
            "answer": q.ai_usage,
            "points": AI_WEIGHT[q.ai_usage],
        },
        {
            "factor": "Repo visibility",
            "answer": q.repo_visibility,
            "points": VISIBILITY_WEIGHT[q.repo_visibility],
        },
        {
            "factor": "Collaboration",
            "answer": q.collaboration,
            "points": COLLABORATION_WEIGHT[q.collaboration],
        },
        {
            "factor": "Compliance",
            "answer": ", ".join(q.compliance) or "none",
            "points": 1 if _has_compliance(q) else 0,
        },
        {
            "factor": "Storage",
            "answer": ", ".join(q.storage) or "none",
            "points": 1 if _has_shared_storage(q) else 0,
        },
    ]
    return pd.DataFrame(rows, columns=["factor", "answer", "points"])


def score(q: Questionnaire) -> int:
    """Risk score in [1, 8]; out-of-range sums are clamped, not wrapped."""
    total = BASE_SCORE
    total += SENSITIVITY_WEIGHT[q.data_sensitivity]
    total += PROJECT_WEIGHT[q.project_type]
    total += AI_WEIGHT[q.ai_usage]
    total += VISIBILITY_WEIGHT[q.repo_visibility]
    total += COLLABORATION_WEIGHT[q.collaboration]
    if _has_compliance(q):
        total += 1
    if _has_shared_storage(q):
        total += 1
    return min(max(total, MIN_SCORE), MAX_SCORE)


def derive_level(value: int) -> str:
    """
    Band a score into a risk level.

    <=2 -> low
    <=4 -> guarded
    <=6 -> elevated
    >6  -> critical
    """
    if value <= 2:
        return "low"
    if value <= 4:
        return "guarded"
    if value <= 6:
        return "elevated"
    return "critical"


def assess(q: Questionnaire) -> RiskAssessment:
    value = score(q)
    return RiskAssessment(score=value, level=derive_level(value))
