"""
Unit Tests for the Statistics Aggregator
"""
import random
from datetime import date, datetime, timezone

import pytest

from hivecommunity.services.statistics import (
    application_stats,
    event_stats,
    hive_dashboard_stats,
    is_upcoming,
    member_stats,
    parse_date,
    parse_timestamp,
    volunteer_stats,
)

TODAY = date(2026, 5, 10)
NOW = datetime(2026, 5, 10, 12, 0, tzinfo=timezone.utc)


def random_split(seed):
    """pending/approved/rejected counts drawn from a seeded generator"""
    rng = random.Random(seed)
    return tuple(rng.randint(0, 12) for _ in range(3))


SPLITS = [(0, 0, 0), (1, 0, 0), (0, 4, 0), (0, 0, 9), (3, 5, 2)] + [random_split(seed) for seed in range(5)]


def records_for(split, field_name, values, rng):
    records = [{field_name: value} for value, count in zip(values, split) for _ in range(count)]
    rng.shuffle(records)
    return records


class TestParsing:
    @pytest.mark.parametrize("value,expected", [
        ("2026-05-10T08:00:00Z", datetime(2026, 5, 10, 8, tzinfo=timezone.utc)),
        ("2026-05-10T08:00:00", datetime(2026, 5, 10, 8, tzinfo=timezone.utc)),
        ("garbage", None),
        (None, None),
    ])
    def test_parse_timestamp(self, value, expected):
        assert parse_timestamp(value) == expected

    def test_parse_date_accepts_timestamps(self):
        assert parse_date("2026-05-10T23:59:00+00:00") == TODAY
        assert parse_date("10/05/2026") is None


class TestApplicationStats:
    def test_counts_by_status(self):
        records = [{"status": "pending"}, {"status": "approved"}, {"status": "approved"}, {}]

        assert application_stats(records) == {"pending": 2, "approved": 2, "rejected": 0, "total": 4}

    def test_empty(self):
        assert application_stats([]) == {"pending": 0, "approved": 0, "rejected": 0, "total": 0}

    @pytest.mark.parametrize("split", SPLITS)
    def test_any_split_is_counted_exactly(self, split):
        records = records_for(split, "status", ("pending", "approved", "rejected"), random.Random(sum(split)))

        stats = application_stats(records)

        assert (stats["pending"], stats["approved"], stats["rejected"]) == split
        assert stats["pending"] + stats["approved"] + stats["rejected"] == stats["total"] == len(records)


class TestMemberStats:
    def test_recent_counts_pending_within_window(self):
        pending = [
            {"createdAt": "2026-05-09T00:00:00+00:00"},
            {"createdAt": "2026-04-01T00:00:00+00:00"},
            {"createdAt": None},
        ]

        stats = member_stats(pending, [{}, {}], [{}], recent_days=7, now=NOW)

        assert stats == {
            "pending": 3,
            "approved": 2,
            "rejected": 1,
            "totalApplications": 6,
            "recentApplications": 1,
        }


class TestEventStats:
    def test_operational_and_approval_axes(self):
        events = [
            {"status": "active", "approvalStatus": "approved", "startDate": "2026-05-12"},
            {"status": "draft", "startDate": "2026-05-10"},
            {"status": "completed", "approvalStatus": "rejected", "startDate": "2026-01-01"},
            {"status": "cancelled", "approvalStatus": "pending", "startDate": "2026-06-01"},
        ]

        stats = event_stats(events, today=TODAY)

        assert stats["total"] == 4
        assert stats["active"] == stats["draft"] == stats["completed"] == stats["cancelled"] == 1
        # Upcoming counts every event dated today or later
        assert stats["upcoming"] == 3
        assert stats["pendingApproval"] == 2
        assert stats["approved"] == 1
        assert stats["rejected"] == 1

    @pytest.mark.parametrize("split", SPLITS)
    def test_both_axes_sum_to_total(self, split):
        rng = random.Random(len(split) + sum(split))
        events = records_for(split, "approvalStatus", ("pending", "approved", "rejected"), rng)
        for event in events:
            event["status"] = rng.choice(("draft", "active", "completed", "cancelled"))

        stats = event_stats(events, today=TODAY)

        assert (stats["pendingApproval"], stats["approved"], stats["rejected"]) == split
        assert stats["draft"] + stats["active"] + stats["completed"] + stats["cancelled"] == stats["total"]
        assert stats["total"] == sum(split)

    def test_is_upcoming_requires_open_status(self):
        assert is_upcoming({"status": "active", "startDate": "2026-05-10"}, TODAY)
        assert is_upcoming({"status": "approved", "startDate": "2026-05-11"}, TODAY)
        assert not is_upcoming({"status": "draft", "startDate": "2026-05-11"}, TODAY)
        assert not is_upcoming({"status": "active", "startDate": "2026-05-09"}, TODAY)


class TestOtherAggregates:
    @pytest.mark.parametrize("split", SPLITS)
    def test_volunteer_application_split(self, split):
        applications = records_for(split, "status", ("pending", "approved", "rejected"), random.Random(7))

        stats = volunteer_stats([], applications)

        counted = (stats["pendingApplications"], stats["approvedApplications"], stats["rejectedApplications"])
        assert counted == split
        assert sum(counted) == stats["totalApplications"]

    def test_volunteer_stats(self):
        opportunities = [{"isActive": True}, {"isActive": False}]
        applications = [{"status": "pending"}, {"status": "approved"}, {"status": "approved"}]

        assert volunteer_stats(opportunities, applications) == {
            "totalOpportunities": 2,
            "activeOpportunities": 1,
            "totalApplications": 3,
            "pendingApplications": 1,
            "approvedApplications": 2,
            "rejectedApplications": 0,
        }

    def test_hive_dashboard_stats(self):
        approved = [{"isActive": True}, {"isActive": False}, {}]

        assert hive_dashboard_stats(approved, [{}], [{}, {}]) == {
            "totalMembers": 3,
            "activeMembers": 2,
            "pendingRequests": 1,
            "totalEvents": 2,
        }
