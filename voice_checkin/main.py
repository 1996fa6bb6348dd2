from fastapi import FastAPI, UploadFile, File, Form, Depends, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware
import time, os
from datetime import datetime, timezone
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from .deps import require_api_key
from .utils_audio import load_wav_mono, recording_metrics, failed_checks
from .features import extract_checkin_features
from .scoring import score_check_in, category_scores, InvalidInput
from .state import get_store, redis_ready
from .history import to_history
from .schemas import (
    CheckInRecord, CheckInRequest, CheckInResponse, ScoreRequest, ScoreResponse,
    SelfReport, Baseline, HistoryResponse, ConfigResponse, ConfigUpdate, RecordingMetrics,
)
from .config import CONFIG
from .metrics import REQUESTS, LATENCY, CHECKINS, FLAGS
from .logging_utils import log_event, dump_logs, new_req_id, new_checkin_id

VERSION = "0.1.0"
STARTED_AT = time.time()

app = FastAPI(title="Voice Check-in API", version=VERSION)

origins = os.getenv("ALLOWED_ORIGINS", "").split(",") if os.getenv("ALLOWED_ORIGINS") else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in origins if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

limiter = Limiter(key_func=get_remote_address, enabled=os.getenv("RATE_LIMIT_ENABLED", "1") != "0")
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)


@app.exception_handler(RateLimitExceeded)
def rate_limit_handler(request, exc):
    return PlainTextResponse("Too Many Requests", status_code=429)


@app.exception_handler(InvalidInput)
def invalid_input_handler(request, exc: InvalidInput):
    return JSONResponse(status_code=422, content={"error": "invalid_input", "field": exc.field})


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _check_in(features, self_report: SelfReport, source: str):
    store = get_store()
    baseline = store.get_baseline()
    flags = score_check_in(features, self_report, baseline)
    record = CheckInRecord(
        id=new_checkin_id(),
        timestamp=_now_iso(),
        features=features,
        selfReport=self_report,
        flags=flags,
    )
    try:
        new_baseline = store.add_check_in(record)
    except Exception as e:
        log_event("store_error", backend=store.backend, error=str(e))
        return JSONResponse(status_code=500, content={"success": False, "error": "Failed to save"})

    CHECKINS.labels(source=source).inc()
    for f in flags:
        FLAGS.labels(type=f.type.value).inc()
    log_event("checkin", id=record.id, source=source, flags=[f.type.value for f in flags], window=new_baseline.window_size)
    return CheckInResponse(success=True, processed=record, flags=flags, baseline=new_baseline)


@app.get("/healthz")
def healthz():
    return {"ok": True, "service": "voice-checkin", "version": VERSION}


@app.get("/livez")
def livez():
    return {"ok": True, "uptime_sec": time.time() - STARTED_AT}


@app.get("/readyz")
def readyz():
    store = get_store()
    return {"ok": True, "store": store.backend, "redis": redis_ready()}


@app.get("/config", response_model=ConfigResponse)
@limiter.limit("60/minute")
def get_config(request: Request):
    return CONFIG.model_dump()


@app.put("/config", response_model=ConfigResponse, dependencies=[Depends(require_api_key)])
@limiter.limit("5/hour")
def update_config(request: Request, update: ConfigUpdate):
    data = update.model_dump(exclude_none=True)
    for k, v in data.items():
        setattr(CONFIG, k, v)
    log_event("config_update", fields=sorted(data))
    return CONFIG.model_dump()


@app.post("/checkin", response_model=CheckInResponse)
@limiter.limit("30/minute")
def checkin(request: Request, body: CheckInRequest):
    return _check_in(body.features, body.self_report, source="json")


@app.post("/checkin/audio", response_model=CheckInResponse)
@limiter.limit("30/minute")
def checkin_audio(
    request: Request,
    wav: UploadFile = File(...),
    stress: float = Form(..., ge=0.0, le=10.0),
    fatigue: float = Form(0.0, ge=0.0, le=10.0),
):
    # runs in the threadpool
    data = wav.file.read()
    try:
        y, sr = load_wav_mono(data, target_sr=CONFIG.SR)
    except (RuntimeError, ValueError) as e:
        log_event("audio_error", error=str(e))
        return JSONResponse(status_code=400, content={"error": "unreadable_audio"})
    m = recording_metrics(y, sr)
    failed = failed_checks(m, CONFIG.MIN_CHECKIN_SECONDS, CONFIG.MIN_RMS)
    if failed:
        return JSONResponse(status_code=400, content={"error": failed[0], "metrics": RecordingMetrics(**m).model_dump(), "failed_checks": failed})
    features = extract_checkin_features(
        y, sr,
        hop=CONFIG.HOP_LENGTH,
        silence_floor=CONFIG.SILENCE_FLOOR,
        silence_fraction=CONFIG.SILENCE_FRACTION,
    )
    return _check_in(features, SelfReport(stress=stress, fatigue=fatigue), source="audio")


@app.post("/score", response_model=ScoreResponse)
@limiter.limit("120/minute")
def score(request: Request, body: ScoreRequest):
    baseline = body.baseline or get_store().get_baseline()
    flags = score_check_in(body.features, body.self_report, baseline)
    scores = category_scores(body.features, body.self_report, baseline)
    log_event("score", flags=[f.type.value for f in flags])
    return ScoreResponse(flags=flags, scores={t.value: pct for t, pct in scores.items()}, baseline=baseline)


@app.get("/history", response_model=HistoryResponse)
@limiter.limit("120/minute")
def history(request: Request):
    return HistoryResponse(history=to_history(get_store().get_check_ins(), limit=CONFIG.HISTORY_LIMIT))


@app.get("/baseline", response_model=Baseline)
@limiter.limit("120/minute")
def baseline(request: Request):
    return get_store().get_baseline()


@app.get("/logs")
@limiter.limit("120/minute")
def get_logs(request: Request, limit: int = 100, kind: str | None = None):
    return dump_logs(limit=limit, kind=kind)


@app.get("/metrics")
def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.middleware("http")
async def access_log_middleware(request: Request, call_next):
    rid = new_req_id()
    request.state.request_id = rid
    start = time.time()
    try:
        log_event("request", request_id=rid, method=request.method, path=str(request.url.path))
        resp = await call_next(request)
        dur = time.time() - start
        log_event("response", request_id=rid, code=resp.status_code, duration_ms=int(dur * 1000), path=str(request.url.path))
        resp.headers["X-Request-ID"] = rid
        return resp
    except Exception as e:
        dur = time.time() - start
        log_event("error", request_id=rid, error=str(e), duration_ms=int(dur * 1000), path=str(request.url.path))
        raise


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    elapsed = time.time() - start
    endpoint = request.url.path
    LATENCY.labels(endpoint=endpoint, method=request.method).observe(elapsed)
    REQUESTS.labels(endpoint=endpoint, method=request.method, code=str(response.status_code)).inc()
    return response
