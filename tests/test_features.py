"""Tests for check-in feature extraction and recording checks."""
import numpy as np
import pytest

from conftest import make_wav, speech_like
from voice_checkin.features import count_bursts, extract_checkin_features
from voice_checkin.utils_audio import failed_checks, load_wav_mono, recording_metrics


def test_empty_clip_is_all_zero():
    f = extract_checkin_features(np.zeros(0, dtype=np.float32))
    assert (f.rms, f.zcr, f.pause_ratio, f.speech_rate, f.duration) == (0.0, 0.0, 0.0, 0.0, 0.0)


def test_silence_is_all_pause():
    f = extract_checkin_features(np.zeros(44100, dtype=np.float32))
    assert f.pause_ratio == 1.0
    assert f.speech_rate == 0.0
    assert f.rms == pytest.approx(0.0)


def test_bursty_speech_rate_and_pauses():
    f = extract_checkin_features(speech_like(seconds=6.0, bursts_per_sec=4.0))
    assert 3.5 < f.speech_rate < 4.5
    assert 0.4 < f.pause_ratio < 0.55
    assert f.duration == pytest.approx(6.0, abs=0.05)
    assert 0.05 < f.rms < 0.2
    assert f.zcr < 0.05


def test_clip_shorter_than_one_frame():
    f = extract_checkin_features(np.full(100, 0.5, dtype=np.float32))
    assert f.rms == pytest.approx(0.5)
    assert f.pause_ratio == 0.0
    assert f.speech_rate > 0


def test_count_bursts_needs_a_drop_between_bursts():
    energy = np.array([0.0, 0.5, 0.6, 0.0, 0.5, 0.5, 0.0])
    assert count_bursts(energy, 0.1) == 2
    assert count_bursts(np.array([0.5, 0.5, 0.5]), 0.1) == 1


def test_load_wav_downmixes_and_resamples():
    mono = speech_like(seconds=1.0, sr=22050)
    stereo = np.stack([mono, mono], axis=1)
    y, sr = load_wav_mono(make_wav(stereo, sr=22050), target_sr=44100)
    assert sr == 44100
    assert y.ndim == 1
    assert len(y) == pytest.approx(44100, abs=10)


def test_load_wav_rejects_garbage():
    with pytest.raises(RuntimeError):
        load_wav_mono(b"definitely not audio")


def test_recording_checks():
    m = recording_metrics(speech_like(seconds=2.0), 44100)
    assert m["duration_sec"] == pytest.approx(2.0)
    assert failed_checks(m, min_seconds=5.0, min_rms=0.001) == ["clip_too_short"]

    quiet = recording_metrics(np.zeros(44100 * 6, dtype=np.float32), 44100)
    assert failed_checks(quiet, min_seconds=5.0, min_rms=0.001) == ["too_quiet"]
