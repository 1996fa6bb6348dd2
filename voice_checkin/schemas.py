from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Wire(BaseModel):
    # camelCase on the wire, snake_case in python
    model_config = ConfigDict(populate_by_name=True, frozen=True)


class FeatureVector(_Wire):
    rms: float = Field(..., ge=0.0)
    zcr: float = Field(..., ge=0.0)
    pause_ratio: float = Field(..., ge=0.0, le=1.0, alias="pauseRatio")
    speech_rate: float = Field(..., ge=0.0, alias="speechRate")
    duration: Optional[float] = Field(None, ge=0.0)


class SelfReport(_Wire):
    stress: float = Field(..., ge=0.0, le=10.0)
    fatigue: float = Field(0.0, ge=0.0, le=10.0)


class Baseline(_Wire):
    avg_energy: float = Field(..., alias="avgEnergy")
    avg_stress: float = Field(..., alias="avgStress")
    window_size: int = Field(0, ge=0, alias="windowSize")


class RiskType(str, Enum):
    LETHARGY_PATTERN = "LETHARGY_PATTERN"
    ANXIETY_PATTERN = "ANXIETY_PATTERN"
    RESPIRATORY_STRAIN = "RESPIRATORY_STRAIN"
    VOCAL_STRAIN = "VOCAL_STRAIN"


class RiskFlag(_Wire):
    type: RiskType
    score: int = Field(..., ge=0, le=100)
    message: str


class CheckInRecord(_Wire):
    id: str
    timestamp: str
    features: FeatureVector
    self_report: SelfReport = Field(..., alias="selfReport")
    flags: List[RiskFlag] = []


class CheckInRequest(_Wire):
    features: FeatureVector
    self_report: SelfReport = Field(..., alias="selfReport")


class ScoreRequest(CheckInRequest):
    baseline: Optional[Baseline] = None


class ScoreResponse(_Wire):
    flags: List[RiskFlag]
    scores: dict
    baseline: Baseline


class CheckInResponse(_Wire):
    success: bool
    processed: CheckInRecord
    flags: List[RiskFlag]
    baseline: Baseline


class HistoryPoint(_Wire):
    date: str
    energy: float
    stress: float
    speech_rate: float = Field(..., alias="speechRate")
    original_timestamp: str = Field(..., alias="originalTimestamp")


class HistoryResponse(BaseModel):
    history: List[HistoryPoint]


class RecordingMetrics(BaseModel):
    duration_sec: float
    rms: float
    clip_ratio: float


class ConfigResponse(BaseModel):
    DB_PATH: str
    DEFAULT_AVG_ENERGY: float
    DEFAULT_AVG_STRESS: float
    HISTORY_LIMIT: int
    SR: int
    HOP_LENGTH: int
    SILENCE_FLOOR: float
    SILENCE_FRACTION: float
    MIN_CHECKIN_SECONDS: float
    MIN_RMS: float


class ConfigUpdate(BaseModel):
    HISTORY_LIMIT: int | None = Field(None, ge=0)
    HOP_LENGTH: int | None = Field(None, ge=1)
    SILENCE_FLOOR: float | None = Field(None, ge=0.0)
    SILENCE_FRACTION: float | None = Field(None, ge=0.0, le=1.0)
    MIN_CHECKIN_SECONDS: float | None = Field(None, ge=0.0)
    MIN_RMS: float | None = Field(None, ge=0.0)
