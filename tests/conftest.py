"""Pytest configuration and fixtures."""
import io
import os

import numpy as np
import pytest
import pytest_asyncio
import soundfile as sf
from httpx import AsyncClient, ASGITransport

# Set test environment before importing app
os.environ["RATE_LIMIT_ENABLED"] = "0"
os.environ.pop("REDIS_URL", None)
os.environ.pop("API_KEY", None)

from voice_checkin.config import CONFIG, RuntimeConfig
from voice_checkin.logging_utils import clear_logs
from voice_checkin.main import app
from voice_checkin.state import JsonCheckInStore, set_store


@pytest.fixture
def store(tmp_path):
    """Point the app at a throwaway JSON file."""
    s = JsonCheckInStore(str(tmp_path / "db.json"))
    set_store(s)
    yield s
    set_store(None)


@pytest.fixture(autouse=True)
def reset_runtime():
    """Undo config edits and clear the event log between tests."""
    snapshot = CONFIG.model_dump()
    clear_logs()
    yield
    for k, v in RuntimeConfig(**snapshot).model_dump().items():
        setattr(CONFIG, k, v)


@pytest_asyncio.fixture
async def async_client(store):
    """Create async test client."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


def make_wav(y: np.ndarray, sr: int = 44100) -> bytes:
    buf = io.BytesIO()
    sf.write(buf, y.astype(np.float32), sr, format="WAV", subtype="FLOAT")
    return buf.getvalue()


def speech_like(seconds: float = 6.0, sr: int = 44100, bursts_per_sec: float = 4.0) -> np.ndarray:
    """Tone bursts separated by silence: half of each period voiced."""
    t = np.arange(int(seconds * sr)) / sr
    tone = 0.3 * np.sin(2 * np.pi * 220.0 * t)
    gate = (np.floor(t * bursts_per_sec * 2) % 2 == 0).astype(np.float32)
    return np.where(gate > 0, tone, 0.0).astype(np.float32)
