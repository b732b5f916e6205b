"""Tests for voltmap.server.rate_limit."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from voltmap.server import rate_limit
from voltmap.server.rate_limit import check_rate_limit


class TestCheckRateLimit:
    def test_allows_up_to_limit(self):
        results = [check_rate_limit("vote", "actor-1", 3, 60) for _ in range(4)]
        assert results == [True, True, True, False]

    def test_buckets_are_independent(self):
        assert check_rate_limit("vote", "actor-1", 1, 60) is True
        assert check_rate_limit("report", "actor-1", 1, 60) is True
        assert check_rate_limit("vote", "actor-1", 1, 60) is False

    def test_actors_are_independent(self):
        assert check_rate_limit("vote", "a", 1, 60) is True
        assert check_rate_limit("vote", "b", 1, 60) is True

    def test_window_slides(self, monkeypatch):
        clock = [1000.0]
        monkeypatch.setattr(rate_limit, "time", SimpleNamespace(time=lambda: clock[0]))

        assert check_rate_limit("report", "actor-1", 1, 60) is True
        assert check_rate_limit("report", "actor-1", 1, 60) is False

        clock[0] += 61
        assert check_rate_limit("report", "actor-1", 1, 60) is True


class TestSweep:
    @pytest.fixture
    def clock(self, monkeypatch):
        clock = [1000.0]
        monkeypatch.setattr(rate_limit, "time", SimpleNamespace(time=lambda: clock[0]))
        return clock

    def test_idle_actors_are_forgotten(self, clock):
        check_rate_limit("vote", "a", 5, 60)
        clock[0] = 1050.0
        check_rate_limit("vote", "b", 5, 60)

        clock[0] = 1070.0
        check_rate_limit("vote", "c", 5, 60)

        assert set(rate_limit._rate_limits) == {"vote:b", "vote:c"}

    def test_longest_window_is_kept(self, clock):
        check_rate_limit("report", "a", 5, 3600)
        clock[0] += 120
        check_rate_limit("vote", "b", 5, 60)

        assert "report:a" in rate_limit._rate_limits
        assert check_rate_limit("report", "a", 1, 3600) is False
