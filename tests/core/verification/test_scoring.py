"""Tests for voltmap.core.verification.scoring."""

from __future__ import annotations

from datetime import timedelta

import pytest

from voltmap.core.exceptions import FeatureDisabledError, NotFoundError
from voltmap.core.verification.scoring import (
    ScoreInputs,
    calculate_score,
    compute_score,
    gather_inputs,
    recency_component,
    report_component,
    require_trust_score_enabled,
    trust_label,
    verification_component,
)

SCORING = "voltmap.core.verification.scoring"


class TestComponents:
    """Tests for the three score components."""

    @pytest.mark.parametrize(
        "total, recent, expected",
        [
            (0, 0, 0),
            (1, 0, 5),
            (1, 1, 10),
            (6, 4, 40),
            (100, 2, 30),
            (100, 100, 40),
        ],
    )
    def test_verification_component(self, total, recent, expected):
        assert verification_component(total, recent) == expected

    @pytest.mark.parametrize("open_reports, expected", [(0, 30), (1, 20), (2, 10), (3, 0), (7, 0)])
    def test_report_component(self, open_reports, expected):
        assert report_component(open_reports) == expected

    @pytest.mark.parametrize(
        "age, expected",
        [
            (timedelta(hours=2), 30),
            (timedelta(days=1), 30),
            (timedelta(days=2), 25),
            (timedelta(days=3), 25),
            (timedelta(days=5), 20),
            (timedelta(days=10), 15),
            (timedelta(days=20), 10),
            (timedelta(days=30), 10),
            (timedelta(days=31), 5),
            (timedelta(days=400), 5),
        ],
    )
    def test_recency_component_steps(self, now, age, expected):
        assert recency_component(now - age, now) == expected

    def test_no_activity_scores_floor(self, now):
        assert recency_component(None, now) == 5


class TestTrustLabel:
    """Tests for the score bands."""

    @pytest.mark.parametrize(
        "score, label",
        [
            (100, "Highly Trusted"),
            (80, "Highly Trusted"),
            (79, "Trusted"),
            (60, "Trusted"),
            (59, "Moderate"),
            (40, "Moderate"),
            (39, "Low Trust"),
            (20, "Low Trust"),
            (19, "Unverified"),
            (0, "Unverified"),
        ],
    )
    def test_bands(self, score, label):
        assert trust_label(score) == label


class TestCalculateScore:
    """Tests for the pure score calculation."""

    def test_busy_well_verified_station(self, now):
        """Every component at its cap sums to the full 100."""
        inputs = ScoreInputs(
            total_verifications=6,
            recent_verifications=4,
            open_recent_reports=0,
            last_activity_at=now - timedelta(hours=2),
        )
        result = calculate_score(inputs, now)

        assert result.verification_score == 40
        assert result.report_score == 30
        assert result.recency_score == 30
        assert result.score == 100
        assert result.label == "Highly Trusted"

    def test_neglected_reported_station(self, now):
        inputs = ScoreInputs(
            total_verifications=0,
            recent_verifications=0,
            open_recent_reports=3,
            last_activity_at=now - timedelta(days=40),
        )
        result = calculate_score(inputs, now)

        assert (result.verification_score, result.report_score, result.recency_score) == (0, 0, 5)
        assert result.score == 5
        assert result.label == "Unverified"

    def test_no_data_at_all(self, now):
        """Zero reports still earns the full report component."""
        result = calculate_score(ScoreInputs(), now)
        assert result.score == 35
        assert result.label == "Low Trust"

    def test_score_equals_component_sum_and_is_bounded(self, now):
        for total in (0, 2, 50):
            for recent in (0, 3, 50):
                for open_reports in (0, 1, 5):
                    for age in (None, timedelta(hours=1), timedelta(days=90)):
                        inputs = ScoreInputs(
                            total_verifications=total,
                            recent_verifications=recent,
                            open_recent_reports=open_reports,
                            last_activity_at=None if age is None else now - age,
                        )
                        result = calculate_score(inputs, now)
                        assert 0 <= result.score <= 100
                        assert result.score == (
                            result.verification_score + result.report_score + result.recency_score
                        )
                        assert 0 <= result.verification_score <= 40
                        assert 0 <= result.report_score <= 30
                        assert 5 <= result.recency_score <= 30

    def test_to_dict_shape(self, now):
        result = calculate_score(ScoreInputs(total_verifications=1, last_activity_at=now), now)
        assert result.to_dict() == {
            "score": 65,
            "label": "Trusted",
            "components": {"verificationScore": 5, "reportScore": 30, "recencyScore": 30},
        }


class TestGatherInputs:
    """Tests for reading score inputs from the database."""

    def test_unknown_station_raises(self, patch_cursor):
        patch_cursor(SCORING)
        with pytest.raises(NotFoundError) as exc_info:
            gather_inputs(404)
        assert exc_info.value.details["resource_type"] == "Station"

    def test_latest_activity_wins(self, patch_cursor, now):
        cur = patch_cursor(SCORING)
        cur.fetchone.side_effect = [
            {"id": 1, "created_at": now - timedelta(days=100), "updated_at": now - timedelta(days=50)},
            {"total": 6, "recent": 4, "last_at": now - timedelta(days=2)},
            {"open_recent": 1, "last_at": now - timedelta(hours=3)},
        ]

        inputs = gather_inputs(1, now)

        assert inputs == ScoreInputs(
            total_verifications=6,
            recent_verifications=4,
            open_recent_reports=1,
            last_activity_at=now - timedelta(hours=3),
        )

    def test_station_update_counts_as_activity(self, patch_cursor, now):
        cur = patch_cursor(SCORING)
        cur.fetchone.side_effect = [
            {"id": 1, "created_at": now - timedelta(days=100), "updated_at": now - timedelta(hours=1)},
            {"total": 0, "recent": 0, "last_at": None},
            {"open_recent": 0, "last_at": None},
        ]

        inputs = gather_inputs(1, now)

        assert inputs.total_verifications == 0
        assert inputs.last_activity_at == now - timedelta(hours=1)

    def test_window_cutoffs_passed_to_queries(self, patch_cursor, now):
        cur = patch_cursor(SCORING)
        cur.fetchone.side_effect = [
            {"id": 1, "created_at": now, "updated_at": None},
            {"total": 0, "recent": 0, "last_at": None},
            {"open_recent": 0, "last_at": None},
        ]

        gather_inputs(1, now)

        params = [c[0][1] for c in cur.execute.call_args_list]
        assert params[0] == (1,)
        assert params[1] == (now - timedelta(days=7), 1)
        assert params[2] == (now - timedelta(days=30), 1)


class TestComputeScore:
    """Tests for compute_score end to end over a mocked cursor."""

    def test_computes_from_gathered_inputs(self, patch_cursor, now):
        cur = patch_cursor(SCORING)
        cur.fetchone.side_effect = [
            {"id": 9, "created_at": now - timedelta(days=60), "updated_at": None},
            {"total": 0, "recent": 0, "last_at": None},
            {"open_recent": 3, "last_at": now - timedelta(days=40)},
        ]

        result = compute_score(9, now)

        assert result.score == 5
        assert result.label == "Unverified"


class TestTrustScoreFlag:
    def test_off_by_default(self, clean_env):
        with pytest.raises(FeatureDisabledError):
            require_trust_score_enabled()

    def test_on_when_flag_set(self, clean_env, monkeypatch):
        monkeypatch.setenv("TRUST_SCORE_ENABLED", "true")
        require_trust_score_enabled()
