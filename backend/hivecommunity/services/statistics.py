"""
Statistics Aggregator

Pure functions over lists of records. Nothing is cached or kept as a running
counter; every call recounts from the records it is given, so the totals can
never drift from the collections they describe.
"""

from collections import Counter
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from hivecommunity.services.document_store import Document

APPLICATION_STATUSES = ("pending", "approved", "rejected")
EVENT_STATUSES = ("draft", "active", "completed", "cancelled")
UPCOMING_EVENT_STATUSES = ("active", "approved")


def count_by(records: Iterable[Mapping[str, Any]], field_name: str,
             buckets: Sequence[str], default: Optional[str] = None) -> Dict[str, int]:
    """Count records per value of ``field_name``; unknown values are ignored"""
    counts = Counter(record.get(field_name) or default for record in records)
    return {bucket: counts.get(bucket, 0) for bucket in buckets}


def parse_timestamp(value: Any) -> Optional[datetime]:
    """ISO-8601 string to an aware datetime; naive values are read as UTC"""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def application_stats(records: List[Document]) -> Dict[str, int]:
    """pending/approved/rejected/total over records carrying ``status``"""
    stats = count_by(records, "status", APPLICATION_STATUSES, default="pending")
    stats["total"] = len(records)
    return stats


def member_stats(
    pending: List[Document],
    approved: List[Document],
    rejected: List[Document],
    recent_days: int = 7,
    now: Optional[datetime] = None,
) -> Dict[str, int]:
    """Per-hive member application counts.

    ``recentApplications`` counts pending applications created within the
    last ``recent_days`` days.
    """
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=recent_days)
    recent = 0
    for record in pending:
        created = parse_timestamp(record.get("createdAt"))
        if created is not None and created > cutoff:
            recent += 1

    return {
        "pending": len(pending),
        "approved": len(approved),
        "rejected": len(rejected),
        "totalApplications": len(pending) + len(approved) + len(rejected),
        "recentApplications": recent,
    }


def starts_on_or_after(event: Mapping[str, Any], today: date) -> bool:
    start = parse_date(event.get("startDate"))
    return start is not None and start >= today


def is_upcoming(event: Mapping[str, Any], today: date) -> bool:
    """Open for attendance: not yet started and active or approved"""
    return starts_on_or_after(event, today) and event.get("status") in UPCOMING_EVENT_STATUSES


def event_stats(events: List[Document], today: Optional[date] = None) -> Dict[str, int]:
    """Operational and approval-axis counts; missing approvalStatus reads as pending"""
    today = today or datetime.now(timezone.utc).date()
    stats: Dict[str, int] = {"total": len(events)}
    stats.update(count_by(events, "status", EVENT_STATUSES))
    # Dated today or later, whatever the status
    stats["upcoming"] = sum(1 for event in events if starts_on_or_after(event, today))

    approval = count_by(events, "approvalStatus", APPLICATION_STATUSES, default="pending")
    stats["pendingApproval"] = approval["pending"]
    stats["approved"] = approval["approved"]
    stats["rejected"] = approval["rejected"]
    return stats


def volunteer_stats(opportunities: List[Document], applications: List[Document]) -> Dict[str, int]:
    by_status = count_by(applications, "status", APPLICATION_STATUSES)
    return {
        "totalOpportunities": len(opportunities),
        "activeOpportunities": sum(1 for o in opportunities if o.get("isActive")),
        "totalApplications": len(applications),
        "pendingApplications": by_status["pending"],
        "approvedApplications": by_status["approved"],
        "rejectedApplications": by_status["rejected"],
    }


def hive_dashboard_stats(
    approved_members: List[Document],
    pending_members: List[Document],
    events: List[Document],
) -> Dict[str, int]:
    return {
        "totalMembers": len(approved_members),
        "activeMembers": sum(1 for m in approved_members if m.get("isActive", True)),
        "pendingRequests": len(pending_members),
        "totalEvents": len(events),
    }
