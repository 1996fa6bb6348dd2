import time, uuid
from collections import deque
from typing import Deque, Dict, Any

MAX_LOGS = 1000

RECENT_LOGS: Deque[Dict[str, Any]] = deque(maxlen=MAX_LOGS)


def now_ts() -> float:
    return time.time()


def new_req_id() -> str:
    return uuid.uuid4().hex[:12]


def new_checkin_id() -> str:
    return uuid.uuid4().hex[:10]


def log_event(kind: str, **fields):
    evt = {"ts": now_ts(), "kind": kind}
    evt.update(fields)
    RECENT_LOGS.append(evt)
    return evt


def dump_logs(limit: int = 100, kind: str | None = None):
    if limit <= 0:
        limit = 100
    out = [e for e in RECENT_LOGS if kind is None or e["kind"] == kind]
    return out[-limit:]


def clear_logs():
    RECENT_LOGS.clear()
