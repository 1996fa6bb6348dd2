# voice_checkin/metrics.py
from prometheus_client import Counter, Histogram

REQUESTS = Counter(
    "vci_requests_total", "Total HTTP requests", ["endpoint", "method", "code"]
)
LATENCY = Histogram(
    "vci_request_latency_seconds", "Request latency", ["endpoint", "method"]
)
CHECKINS = Counter(
    "vci_checkins_total", "Stored check-ins", ["source"]  # "json" or "audio"
)
FLAGS = Counter(
    "vci_flags_total", "Risk flags emitted", ["type"]
)
