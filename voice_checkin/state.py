# voice_checkin/state.py
import os
import json
import threading
from typing import List

from .config import CONFIG
from .logging_utils import log_event
from .schemas import Baseline, CheckInRecord

REDIS_URL = os.getenv("REDIS_URL")
REDIS_PREFIX = "checkin"


def default_baseline() -> Baseline:
    return Baseline(avgEnergy=CONFIG.DEFAULT_AVG_ENERGY, avgStress=CONFIG.DEFAULT_AVG_STRESS, windowSize=0)


def next_baseline(baseline: Baseline, rms: float, stress: float) -> Baseline:
    """Fold one check-in into the running means."""
    n = baseline.window_size + 1
    return Baseline(
        avgEnergy=(baseline.avg_energy * (n - 1) + rms) / n,
        avgStress=(baseline.avg_stress * (n - 1) + stress) / n,
        windowSize=n,
    )


class JsonCheckInStore:
    """Check-ins and baseline in one pretty-printed JSON file."""

    backend = "json"

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def _empty(self) -> dict:
        return {"checkIns": [], "baseline": default_baseline().model_dump(by_alias=True)}

    def _read(self) -> dict:
        if not os.path.exists(self.path):
            return self._empty()
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            log_event("store_unreadable", path=self.path, error=str(e))
            return self._empty()
        if not isinstance(data, dict):
            log_event("store_unreadable", path=self.path, error=f"top level is {type(data).__name__}")
            return self._empty()
        data.setdefault("checkIns", [])
        data.setdefault("baseline", default_baseline().model_dump(by_alias=True))
        try:
            if not isinstance(data["checkIns"], list):
                raise ValueError("checkIns is not a list")
            Baseline.model_validate(data["baseline"])
            for r in data["checkIns"]:
                CheckInRecord.model_validate(r)
        except ValueError as e:
            # pydantic's ValidationError is a ValueError
            log_event("store_unreadable", path=self.path, error=str(e))
            return self._empty()
        return data

    def _write(self, data: dict):
        tmp = self.path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp, self.path)

    def get_check_ins(self) -> List[CheckInRecord]:
        return [CheckInRecord.model_validate(r) for r in self._read()["checkIns"]]

    def get_baseline(self) -> Baseline:
        return Baseline.model_validate(self._read()["baseline"])

    def add_check_in(self, record: CheckInRecord) -> Baseline:
        with self._lock:
            data = self._read()
            data["checkIns"].append(record.model_dump(by_alias=True, mode="json", exclude_none=True))
            bl = next_baseline(Baseline.model_validate(data["baseline"]), record.features.rms, record.self_report.stress)
            data["baseline"] = bl.model_dump(by_alias=True)
            self._write(data)
        return bl


class RedisCheckInStore:
    """Same contract as JsonCheckInStore; records in a list, baseline in a hash."""

    backend = "redis"

    def __init__(self, client, prefix: str = REDIS_PREFIX):
        self.r = client
        self.list_key = f"{prefix}:records"
        self.baseline_key = f"{prefix}:baseline"

    def get_check_ins(self) -> List[CheckInRecord]:
        return [CheckInRecord.model_validate_json(r) for r in self.r.lrange(self.list_key, 0, -1)]

    def get_baseline(self) -> Baseline:
        h = self.r.hgetall(self.baseline_key)
        if not h:
            return default_baseline()
        return Baseline(avgEnergy=float(h["avgEnergy"]), avgStress=float(h["avgStress"]), windowSize=int(h["windowSize"]))

    def add_check_in(self, record: CheckInRecord) -> Baseline:
        # WATCH/MULTI keeps the baseline fold consistent across workers
        import redis
        with self.r.pipeline() as pipe:
            while True:
                try:
                    pipe.watch(self.baseline_key)
                    bl = next_baseline(self.get_baseline(), record.features.rms, record.self_report.stress)
                    pipe.multi()
                    pipe.rpush(self.list_key, record.model_dump_json(by_alias=True, exclude_none=True))
                    pipe.hset(self.baseline_key, mapping=bl.model_dump(by_alias=True))
                    pipe.execute()
                    return bl
                except redis.WatchError:
                    continue


_store = None


def _connect_redis(url: str):
    import redis
    client = redis.Redis.from_url(url, decode_responses=True)
    client.ping()
    return client


def get_store():
    global _store
    if _store is None:
        if REDIS_URL:
            try:
                _store = RedisCheckInStore(_connect_redis(REDIS_URL))
            except Exception as e:
                # fallback to the json file
                log_event("store_fallback", backend="json", error=str(e))
                _store = JsonCheckInStore(CONFIG.DB_PATH)
        else:
            _store = JsonCheckInStore(CONFIG.DB_PATH)
    return _store


def set_store(store):
    global _store
    _store = store
    return _store


def redis_ready() -> bool:
    if not isinstance(_store, RedisCheckInStore):
        return False
    try:
        _store.r.ping()
        return True
    except Exception:
        return False
