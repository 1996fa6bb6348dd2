# voice_checkin/utils_audio.py
import io

import numpy as np
import soundfile as sf
import librosa

TARGET_SR = 44100


def load_wav_mono(file_bytes: bytes, target_sr: int = TARGET_SR):
    y, sr = sf.read(io.BytesIO(file_bytes), dtype="float32", always_2d=False)
    if y.ndim > 1:
        y = y.mean(axis=1)
    if sr != target_sr:
        y = librosa.resample(y, orig_sr=sr, target_sr=target_sr)
        sr = target_sr
    return y, sr


def recording_metrics(y: np.ndarray, sr: int):
    dur = len(y) / float(sr)
    if len(y) == 0:
        return {"duration_sec": 0.0, "rms": 0.0, "clip_ratio": 0.0}
    rms = float(np.sqrt(np.mean(y ** 2)))
    clip_ratio = float(np.mean(np.abs(y) > 0.98))
    return {"duration_sec": dur, "rms": rms, "clip_ratio": clip_ratio}


def failed_checks(m: dict, min_seconds: float, min_rms: float):
    failed = []
    if m["duration_sec"] < min_seconds:
        failed.append("clip_too_short")
    if m["rms"] < min_rms:
        failed.append("too_quiet")
    return failed
