"""Tests for voltmap.core.verification.trust_events.

Uses a small in-memory stand-in for the tables the ledger touches so the
window check, insert and score update can be observed together.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import pytest

from voltmap.core.exceptions import InvalidInputError
from voltmap.core.verification.enums import TrustEventType, UserTrustLevel, Vote
from voltmap.core.verification.trust_events import (
    count_contradictions,
    event_lock_key,
    get_actor_trust_level,
    penalize_contradictions,
    reward_report_consensus,
    reward_verification_consensus,
    trust_level_for,
    try_record_event,
)

TRUST_EVENTS = "voltmap.core.verification.trust_events"


class FakeTrustDB:
    """Cursor over in-memory trust_events, users, votes and reports."""

    def __init__(self) -> None:
        self.events: list[dict[str, Any]] = []
        self.users: dict[str, dict[str, Any]] = {}
        self.votes: list[dict[str, Any]] = []
        self.reports: list[dict[str, Any]] = []
        self.locks: list[int] = []
        self._one: Any = None
        self._all: list[Any] = []

    # -- cursor protocol -------------------------------------------------

    def execute(self, sql: str, params: Any = None) -> None:
        params = list(params or [])
        self._one, self._all = None, []

        if "pg_advisory_xact_lock" in sql:
            self.locks.append(params[0])
        elif sql.lstrip().startswith("SELECT id FROM trust_events"):
            self._one = self._find_event(sql, params)
        elif "INSERT INTO trust_events" in sql:
            actor_id, event_type, station_id, reason, delta, created_at = params
            row = {
                "id": len(self.events) + 1,
                "actor_id": actor_id,
                "event_type": event_type,
                "station_id": station_id,
                "reason": reason,
                "delta": delta,
                "created_at": created_at,
            }
            self.events.append(row)
            self._one = dict(row)
        elif "SELECT trust_score FROM users" in sql:
            user = self.users.get(params[0])
            self._one = {"trust_score": user["trust_score"]} if user else None
        elif sql.lstrip().startswith("UPDATE users"):
            score, level, actor_id = params
            self.users[actor_id].update(trust_score=score, user_trust_level=level)
        elif "SELECT user_trust_level FROM users" in sql:
            user = self.users.get(params[0])
            self._one = {"user_trust_level": user["user_trust_level"]} if user else None
        elif "SELECT vote, created_at FROM station_verifications" in sql:
            station_id, start, end = params
            self._all = [
                v for v in self.votes if v["station_id"] == station_id and start <= v["created_at"] <= end
            ]
        elif "SELECT station_id, vote, created_at FROM station_verifications" in sql:
            actor_id, cutoff = params
            own = [v for v in self.votes if v["user_id"] == actor_id and v["created_at"] >= cutoff]
            self._all = sorted(own, key=lambda v: v["created_at"])
        elif "SELECT user_id FROM reports" in sql:
            station_id, reason, cutoff = params
            rows = [
                r for r in self.reports
                if r["station_id"] == station_id and r["reason"] == reason and r["created_at"] >= cutoff
            ]
            self._all = [{"user_id": r["user_id"]} for r in sorted(rows, key=lambda r: r["created_at"])]
        else:
            raise AssertionError(f"Unexpected SQL: {sql}")

    def fetchone(self) -> Any:
        return self._one

    def fetchall(self) -> list[Any]:
        return self._all

    # -- helpers ---------------------------------------------------------

    def _find_event(self, sql: str, params: list[Any]) -> dict[str, Any] | None:
        actor_id, event_type, station_id, cutoff = params[:4]
        check_reason = "reason IS NOT DISTINCT FROM" in sql
        for event in self.events:
            if (
                event["actor_id"] == actor_id
                and event["event_type"] == event_type
                and event["station_id"] == station_id
                and event["created_at"] > cutoff
                and (not check_reason or event["reason"] == params[4])
            ):
                return {"id": event["id"]}
        return None

    def add_user(self, actor_id: str, score: int = 0) -> None:
        self.users[actor_id] = {"trust_score": score, "user_trust_level": trust_level_for(score).value}

    def add_vote(self, station_id: int, user_id: str, vote: str, created_at) -> None:
        self.votes.append({"station_id": station_id, "user_id": user_id, "vote": vote, "created_at": created_at})

    def add_report(self, station_id: int, user_id: str | None, reason: str, created_at) -> None:
        self.reports.append(
            {"station_id": station_id, "user_id": user_id, "reason": reason, "created_at": created_at}
        )


@pytest.fixture
def db(patch_cursor) -> FakeTrustDB:
    fake = FakeTrustDB()
    patch_cursor(TRUST_EVENTS, cursor=fake)
    return fake


# ============================================================================
# Tiers
# ============================================================================


class TestTrustLevel:
    """Tests for score to tier mapping."""

    @pytest.mark.parametrize(
        "score, level",
        [
            (0, UserTrustLevel.NEW),
            (4, UserTrustLevel.NEW),
            (5, UserTrustLevel.NORMAL),
            (9, UserTrustLevel.NORMAL),
            (10, UserTrustLevel.TRUSTED),
            (250, UserTrustLevel.TRUSTED),
        ],
    )
    def test_thresholds(self, score, level):
        assert trust_level_for(score) == level

    def test_unknown_actor_is_new(self, db):
        assert get_actor_trust_level("ghost") == UserTrustLevel.NEW

    def test_stored_level(self, db):
        db.add_user("alice", score=12)
        assert get_actor_trust_level("alice") == UserTrustLevel.TRUSTED


# ============================================================================
# Idempotent Recording
# ============================================================================


class TestTryRecordEvent:
    """Tests for sliding-window idempotency."""

    def test_first_event_recorded_and_applied(self, db, now):
        db.add_user("alice", score=4)

        outcome = try_record_event("alice", TrustEventType.VERIFICATION_REWARD, station_id=7, now=now)

        assert outcome.recorded is True
        assert outcome.event.event_type == TrustEventType.VERIFICATION_REWARD
        assert outcome.event.delta == 1
        assert outcome.event.station_id == 7
        assert outcome.event.created_at == now
        assert db.users["alice"] == {"trust_score": 5, "user_trust_level": "NORMAL"}
        assert len(db.locks) == 1

    def test_duplicate_in_window_is_skipped(self, db, now):
        db.add_user("alice")
        first = try_record_event("alice", "verification_reward", station_id=7, now=now)
        second = try_record_event(
            "alice", "verification_reward", station_id=7, now=now + timedelta(minutes=10)
        )

        assert first.recorded is True
        assert second.recorded is False
        assert second.event is None
        assert len(db.events) == 1
        assert db.users["alice"]["trust_score"] == 1

    def test_recorded_again_after_window(self, db, now):
        db.add_user("alice")
        try_record_event("alice", TrustEventType.VERIFICATION_REWARD, station_id=7, now=now)
        later = try_record_event(
            "alice", TrustEventType.VERIFICATION_REWARD, station_id=7, now=now + timedelta(minutes=31)
        )

        assert later.recorded is True
        assert len(db.events) == 2
        assert db.users["alice"]["trust_score"] == 2

    def test_other_station_is_a_different_key(self, db, now):
        db.add_user("alice")
        try_record_event("alice", TrustEventType.VERIFICATION_REWARD, station_id=7, now=now)
        other = try_record_event("alice", TrustEventType.VERIFICATION_REWARD, station_id=8, now=now)
        assert other.recorded is True

    def test_report_reward_keyed_by_reason(self, db, now):
        db.add_user("bob")
        a = try_record_event("bob", TrustEventType.REPORT_REWARD, station_id=3, reason="BUSY", now=now)
        b = try_record_event("bob", TrustEventType.REPORT_REWARD, station_id=3, reason="ACCESS_ISSUE", now=now)
        c = try_record_event(
            "bob", TrustEventType.REPORT_REWARD, station_id=3, reason="BUSY", now=now + timedelta(hours=23)
        )

        assert (a.recorded, b.recorded, c.recorded) == (True, True, False)
        assert db.users["bob"]["trust_score"] == 4

    def test_penalty_floors_score_at_zero(self, db, now):
        db.add_user("carol", score=0)
        outcome = try_record_event("carol", TrustEventType.CONTRADICTION_PENALTY, now=now)

        assert outcome.recorded is True
        assert outcome.event.delta == -1
        assert db.users["carol"] == {"trust_score": 0, "user_trust_level": "NEW"}

    def test_penalty_can_drop_tier(self, db, now):
        db.add_user("dave", score=10)
        try_record_event("dave", TrustEventType.CONTRADICTION_PENALTY, now=now)
        assert db.users["dave"] == {"trust_score": 9, "user_trust_level": "NORMAL"}

    def test_unknown_actor_still_records_event(self, db, now):
        outcome = try_record_event("ghost", TrustEventType.VERIFICATION_REWARD, station_id=1, now=now)
        assert outcome.recorded is True
        assert "ghost" not in db.users

    def test_explicit_delta(self, db, now):
        db.add_user("erin")
        outcome = try_record_event("erin", TrustEventType.REPORT_REWARD, station_id=1, reason="BUSY", delta=5, now=now)
        assert outcome.event.delta == 5
        assert db.users["erin"]["trust_score"] == 5

    def test_unknown_event_type(self, db, now):
        with pytest.raises(InvalidInputError):
            try_record_event("alice", "bonus", now=now)
        assert db.events == []


class TestEventLockKey:
    """Tests for advisory lock keys."""

    def test_stable_and_signed_64_bit(self):
        key = event_lock_key("alice", TrustEventType.VERIFICATION_REWARD, 7, None)
        assert key == event_lock_key("alice", TrustEventType.VERIFICATION_REWARD, 7, None)
        assert -(2**63) <= key < 2**63

    def test_reason_only_matters_for_report_reward(self):
        vr = TrustEventType.VERIFICATION_REWARD
        rr = TrustEventType.REPORT_REWARD
        assert event_lock_key("a", vr, 1, "BUSY") == event_lock_key("a", vr, 1, None)
        assert event_lock_key("a", rr, 1, "BUSY") != event_lock_key("a", rr, 1, "NOT_FOUND")


# ============================================================================
# Policies
# ============================================================================


class TestVerificationConsensus:
    """Tests for reward_verification_consensus."""

    def test_rewards_vote_matching_consensus(self, db, now):
        db.add_user("alice")
        for i, user in enumerate(["bob", "carol", "alice"]):
            db.add_vote(7, user, "WORKING", now - timedelta(minutes=3 - i))

        outcome = reward_verification_consensus(7, "alice", Vote.WORKING, now=now)

        assert outcome is not None and outcome.recorded is True
        assert db.users["alice"]["trust_score"] == 1

    def test_no_reward_below_min_votes(self, db, now):
        db.add_vote(7, "bob", "WORKING", now - timedelta(minutes=2))
        db.add_vote(7, "alice", "WORKING", now - timedelta(minutes=1))
        assert reward_verification_consensus(7, "alice", "WORKING", now=now) is None
        assert db.events == []

    def test_no_reward_against_consensus(self, db, now):
        for user in ("bob", "carol", "dave"):
            db.add_vote(7, user, "BUSY", now - timedelta(minutes=5))
        db.add_vote(7, "alice", "WORKING", now)
        assert reward_verification_consensus(7, "alice", "WORKING", now=now) is None

    def test_old_votes_ignored(self, db, now):
        for user in ("bob", "carol"):
            db.add_vote(7, user, "WORKING", now - timedelta(hours=2))
        db.add_vote(7, "alice", "WORKING", now)
        assert reward_verification_consensus(7, "alice", "WORKING", now=now) is None

    def test_repeat_reward_suppressed(self, db, now):
        db.add_user("alice")
        for user in ("bob", "carol", "alice"):
            db.add_vote(7, user, "WORKING", now - timedelta(minutes=1))

        reward_verification_consensus(7, "alice", "WORKING", now=now)
        again = reward_verification_consensus(7, "alice", "WORKING", now=now + timedelta(minutes=5))

        assert again.recorded is False
        assert db.users["alice"]["trust_score"] == 1


class TestContradictions:
    """Tests for count_contradictions and penalize_contradictions."""

    def _contradicted_vote(self, db, station_id, at):
        db.add_vote(station_id, "mallory", "WORKING", at)
        for user in ("u1", "u2", "u3"):
            db.add_vote(station_id, user, "NOT_WORKING", at + timedelta(minutes=5))

    def test_counts_only_contradicted_votes(self, db, now):
        self._contradicted_vote(db, 1, now - timedelta(hours=3))
        db.add_vote(2, "mallory", "BUSY", now - timedelta(hours=2))
        assert count_contradictions("mallory", now) == 1

    def test_votes_outside_lookback_ignored(self, db, now):
        self._contradicted_vote(db, 1, now - timedelta(hours=30))
        assert count_contradictions("mallory", now) == 0

    def test_penalty_after_threshold(self, db, now):
        db.add_user("mallory", score=6)
        for station_id in (1, 2, 3):
            self._contradicted_vote(db, station_id, now - timedelta(hours=station_id))

        outcome = penalize_contradictions("mallory", now)

        assert outcome.recorded is True
        assert outcome.event.event_type == TrustEventType.CONTRADICTION_PENALTY
        assert outcome.event.station_id is None
        assert db.users["mallory"] == {"trust_score": 5, "user_trust_level": "NORMAL"}

    def test_penalty_once_per_day(self, db, now):
        db.add_user("mallory", score=6)
        for station_id in (1, 2, 3):
            self._contradicted_vote(db, station_id, now - timedelta(hours=station_id))

        penalize_contradictions("mallory", now)
        again = penalize_contradictions("mallory", now + timedelta(minutes=10))

        assert again.recorded is False
        assert db.users["mallory"]["trust_score"] == 5

    def test_no_penalty_below_threshold(self, db, now):
        db.add_user("mallory", score=6)
        for station_id in (1, 2):
            self._contradicted_vote(db, station_id, now - timedelta(hours=station_id))
        assert penalize_contradictions("mallory", now) is None
        assert db.events == []


class TestReportConsensus:
    """Tests for reward_report_consensus."""

    def test_rewards_each_reporter_once(self, db, now):
        for user in ("a", "b", "c"):
            db.add_user(user)
        for i, user in enumerate(["a", "b", "a", "c"]):
            db.add_report(5, user, "BUSY", now - timedelta(hours=4 - i))

        outcomes = reward_report_consensus(5, "BUSY", now)

        assert [o.recorded for o in outcomes] == [True, True, True]
        assert {o.event.actor_id for o in outcomes} == {"a", "b", "c"}
        assert all(db.users[u]["trust_score"] == 2 for u in ("a", "b", "c"))

    def test_below_threshold_rewards_nobody(self, db, now):
        db.add_report(5, "a", "BUSY", now - timedelta(hours=1))
        db.add_report(5, "b", "BUSY", now - timedelta(hours=1))
        db.add_report(5, "c", "ACCESS_ISSUE", now - timedelta(hours=1))
        assert reward_report_consensus(5, "BUSY", now) == []

    def test_anonymous_reports_count_but_are_not_rewarded(self, db, now):
        db.add_user("a")
        db.add_report(5, "a", "NOT_FOUND", now - timedelta(hours=3))
        db.add_report(5, None, "NOT_FOUND", now - timedelta(hours=2))
        db.add_report(5, None, "NOT_FOUND", now - timedelta(hours=1))

        outcomes = reward_report_consensus(5, "NOT_FOUND", now)

        assert len(outcomes) == 1
        assert outcomes[0].event.actor_id == "a"

    def test_second_pass_is_idempotent(self, db, now):
        for user in ("a", "b", "c"):
            db.add_user(user)
            db.add_report(5, user, "BUSY", now - timedelta(hours=1))

        reward_report_consensus(5, "BUSY", now)
        second = reward_report_consensus(5, "BUSY", now + timedelta(hours=1))

        assert [o.recorded for o in second] == [False, False, False]
        assert len(db.events) == 3
