# voice_checkin/features.py
import numpy as np
import librosa

from .schemas import FeatureVector

SR = 44100
HOP = 512


def frame_energy(y: np.ndarray, hop: int = HOP):
    """Per-hop RMS and zero-crossing rate over non-overlapping frames."""
    y = np.nan_to_num(np.asarray(y, dtype=np.float32))
    if len(y) == 0:
        return np.zeros(0, dtype=np.float32), np.zeros(0, dtype=np.float32)
    if len(y) < hop:
        # shorter than one frame
        rms = np.array([np.sqrt(np.mean(y ** 2))], dtype=np.float32)
        zcr = np.array([((y[:-1] * y[1:]) < 0).mean() if len(y) > 1 else 0.0], dtype=np.float32)
        return rms, zcr
    rms = librosa.feature.rms(y=y, frame_length=hop, hop_length=hop, center=False)[0]
    zcr = librosa.feature.zero_crossing_rate(y, frame_length=hop, hop_length=hop, center=False)[0]
    return rms, zcr


def count_bursts(energy: np.ndarray, threshold: float) -> int:
    bursts = 0
    in_burst = False
    for e in energy:
        if not in_burst and e > threshold:
            bursts += 1
            in_burst = True
        elif in_burst and e < threshold:
            in_burst = False
    return bursts


def extract_checkin_features(
    y: np.ndarray,
    sr: int = SR,
    hop: int = HOP,
    silence_floor: float = 0.02,
    silence_fraction: float = 0.1,
) -> FeatureVector:
    """
    Coarse check-in features from a mono clip:
    - rms, zcr: frame means
    - pauseRatio: share of frames under the silence threshold
    - speechRate: energy bursts per second (a rate proxy, not syllables)
    """
    rms, zcr = frame_energy(y, hop)
    if len(rms) == 0:
        return FeatureVector(rms=0.0, zcr=0.0, pauseRatio=0.0, speechRate=0.0, duration=0.0)

    silence = max(silence_floor, float(rms.max()) * silence_fraction)
    pause_ratio = float((rms < silence).mean())
    duration = len(rms) * hop / float(sr)
    bursts = count_bursts(rms, silence)
    speech_rate = bursts / duration if duration > 0 else 0.0

    return FeatureVector(
        rms=float(rms.mean()),
        zcr=float(zcr.mean()),
        pauseRatio=pause_ratio,
        speechRate=speech_rate,
        duration=duration,
    )
