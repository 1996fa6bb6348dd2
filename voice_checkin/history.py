# voice_checkin/history.py
from datetime import datetime, timezone
from typing import Iterable, List

from .schemas import CheckInRecord, HistoryPoint


def day_label(timestamp: str) -> str:
    """'2026-10-19T08:00:00Z' -> '19 Mon' (UTC)."""
    dt = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return f"{dt.day} {dt:%a}"


def to_history(records: Iterable[CheckInRecord], limit: int = 0) -> List[HistoryPoint]:
    """Chart-ready points, oldest first; limit keeps only the newest N (0 = all)."""
    points = [
        HistoryPoint(
            date=day_label(r.timestamp),
            energy=r.features.rms,
            stress=r.self_report.stress,
            speechRate=r.features.speech_rate,
            originalTimestamp=r.timestamp,
        )
        for r in records
    ]
    if limit > 0:
        points = points[-limit:]
    return points
