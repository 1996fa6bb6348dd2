import os

from pydantic import BaseModel, Field


class RuntimeConfig(BaseModel):
    # Storage
    DB_PATH: str = os.getenv("CHECKIN_DB_PATH", "db.json")
    DEFAULT_AVG_ENERGY: float = Field(0.5, ge=0.0)
    DEFAULT_AVG_STRESS: float = Field(5.0, ge=0.0, le=10.0)
    HISTORY_LIMIT: int = Field(0, ge=0)

    # Feature extraction
    SR: int = 44100
    HOP_LENGTH: int = Field(512, ge=1)
    SILENCE_FLOOR: float = Field(0.02, ge=0.0)
    SILENCE_FRACTION: float = Field(0.1, ge=0.0, le=1.0)

    # Recording quality
    MIN_CHECKIN_SECONDS: float = Field(5.0, ge=0.0)
    MIN_RMS: float = Field(0.001, ge=0.0)


CONFIG = RuntimeConfig()
