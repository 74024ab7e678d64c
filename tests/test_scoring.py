"""
Risk scoring tests
"""

import itertools

import pytest

from config import AI_USAGE, COLLABORATION, PROJECT_TYPES, REPO_VISIBILITY, SENSITIVITY, option_values
from models import Questionnaire
from scoring import assess, derive_level, score, score_breakdown


def _minimal(**overrides) -> Questionnaire:
    base = dict(
        project_type="coursework",
        repo_visibility="private",
        data_sensitivity="low",
        ai_usage="sparingly",
        collaboration="solo",
    )
    base.update(overrides)
    return Questionnaire(**base)


class TestScore:
    """Score weights and clamping"""

    def test_minimal_answers_score_base(self):
        assert score(_minimal()) == 1

    def test_below_one_clamps_to_one(self):
        """air-gapped alone would sum to 0"""
        assert score(_minimal(repo_visibility="air-gapped")) == 1

    def test_above_eight_clamps_to_eight(self):
        q = Questionnaire(
            project_type="proprietary",
            data_sensitivity="high",
            ai_usage="autonomous",
            repo_visibility="private",
            collaboration="cross-org",
            compliance=["Corporate NDA"],
            storage=["cloud-synced"],
        )
        assert score(q) == 8
        assert assess(q).level == "critical"

    def test_defaults(self):
        """medium +1, paired +1, small-team +1"""
        assert score(Questionnaire()) == 4

    @pytest.mark.parametrize(
        "overrides, expected",
        [
            ({"data_sensitivity": "medium"}, 2),
            ({"data_sensitivity": "high"}, 3),
            ({"project_type": "personal"}, 1),
            ({"project_type": "research"}, 2),
            ({"project_type": "proprietary"}, 3),
            ({"ai_usage": "paired"}, 2),
            ({"ai_usage": "autonomous"}, 3),
            ({"repo_visibility": "public"}, 2),
            ({"collaboration": "small-team"}, 2),
            ({"collaboration": "cross-org"}, 3),
        ],
    )
    def test_single_factor_weights(self, overrides, expected):
        assert score(_minimal(**overrides)) == expected

    def test_compliance_none_does_not_count(self):
        assert score(_minimal(compliance=["None"])) == 1
        assert score(_minimal(compliance=["None", "HIPAA"])) == 2

    def test_shared_storage_counts_once(self):
        assert score(_minimal(storage=["local-plain"])) == 1
        assert score(_minimal(storage=["shared-drive"])) == 2
        assert score(_minimal(storage=["cloud-synced", "shared-drive"])) == 2

    def test_always_in_range(self):
        for combo in itertools.product(
            option_values(SENSITIVITY),
            option_values(PROJECT_TYPES),
            option_values(AI_USAGE),
            option_values(REPO_VISIBILITY),
            option_values(COLLABORATION),
        ):
            sens, ptype, ai, vis, collab = combo
            q = Questionnaire(
                data_sensitivity=sens,
                project_type=ptype,
                ai_usage=ai,
                repo_visibility=vis,
                collaboration=collab,
                compliance=["FERPA"],
                storage=["cloud-synced"],
            )
            assert 1 <= score(q) <= 8


class TestDeriveLevel:
    """Level bands"""

    @pytest.mark.parametrize(
        "value, level",
        [
            (1, "low"),
            (2, "low"),
            (3, "guarded"),
            (4, "guarded"),
            (5, "elevated"),
            (6, "elevated"),
            (7, "critical"),
            (8, "critical"),
        ],
    )
    def test_bands(self, value, level):
        assert derive_level(value) == level


class TestScoreBreakdown:
    """Per-factor contributions"""

    def test_sum_matches_unclamped_score(self):
        q = _minimal(data_sensitivity="high", compliance=["HIPAA"], storage=["shared-drive"])
        df = score_breakdown(q)
        assert list(df.columns) == ["factor", "answer", "points"]
        assert int(df["points"].sum()) == score(q) == 5

    def test_negative_contribution_kept(self):
        df = score_breakdown(_minimal(repo_visibility="air-gapped"))
        assert int(df["points"].sum()) == 0
        row = df[df["factor"] == "Repo visibility"].iloc[0]
        assert row["points"] == -1
        assert row["answer"] == "air-gapped"
