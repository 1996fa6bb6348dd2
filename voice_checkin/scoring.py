# voice_checkin/scoring.py
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

from .schemas import Baseline, FeatureVector, RiskFlag, RiskType, SelfReport

DISPLAY_THRESHOLD = 40


class InvalidInput(ValueError):
    """Raised when a scorer input is missing a field or carries a non-numeric value."""

    def __init__(self, field: str, reason: str = "missing or non-numeric"):
        self.field = field
        self.reason = reason
        super().__init__(f"invalid input {field}: {reason}")


def drift(value: float, base: float) -> float:
    """Deviation from a personal baseline, scaled so a 10% deviation is 1.0."""
    if base == 0:
        return 0.0
    return (value - base) / (base * 0.1)


def sigmoid(x: float, steepness: float, shift: float) -> float:
    z = -steepness * (x - shift)
    if z > 700.0:
        return 0.0
    return 1.0 / (1.0 + math.exp(z))


def to_percent(raw: float, steepness: float, shift: float) -> int:
    # half rounds up, like Math.round
    return int(min(100, math.floor(sigmoid(raw, steepness, shift) * 100 + 0.5)))


def _excess(value: float, trigger: float, gain: float) -> float:
    return (value - trigger) * gain if value > trigger else 0.0


def _shortfall(value: float, trigger: float, gain: float) -> float:
    return (trigger - value) * gain if value < trigger else 0.0


# inputs seen by every term: (features, self_report, baseline) as plain floats
Inputs = Tuple[Dict[str, float], Dict[str, float], Dict[str, float]]
Term = Tuple[float, Callable[[Inputs], float]]


def _low_energy(inp: Inputs) -> float:
    f, _, b = inp
    if f["rms"] < b["avg_energy"]:
        return abs(drift(f["rms"], b["avg_energy"]))
    return 0.0


@dataclass(frozen=True)
class CategoryRule:
    type: RiskType
    terms: Tuple[Term, ...]
    steepness: float
    shift: float
    description: str

    def raw_score(self, inp: Inputs) -> float:
        return sum(weight * term(inp) for weight, term in self.terms)

    def percent(self, inp: Inputs) -> int:
        return to_percent(self.raw_score(inp), self.steepness, self.shift)

    def message(self, percent: int) -> str:
        return f"Probability: {percent}%. {self.description}."


# Calibration constants were tuned by hand; keep them as-is.
RULES: Tuple[CategoryRule, ...] = (
    CategoryRule(
        RiskType.LETHARGY_PATTERN,
        (
            (0.5, _low_energy),
            (0.5, lambda inp: _shortfall(inp[0]["speech_rate"], 3.5, 3)),
        ),
        1.2, 1.5,
        "Detected low energy and lethargic speech patterns",
    ),
    CategoryRule(
        RiskType.ANXIETY_PATTERN,
        (
            (0.5, lambda inp: _excess(inp[1]["stress"], 5, 0.8)),
            (0.3, lambda inp: _excess(inp[0]["speech_rate"], 4.5, 4)),
            (0.2, lambda inp: _excess(inp[0]["zcr"], 0.1, 30)),
        ),
        1, 2,
        "High anxiety markers detected",
    ),
    CategoryRule(
        RiskType.RESPIRATORY_STRAIN,
        (
            (0.7, lambda inp: _excess(inp[0]["pause_ratio"], 0.3, 15)),
            (0.3, lambda inp: _shortfall(inp[0]["speech_rate"], 3.0, 1.5)),
        ),
        1.2, 1,
        "Respiratory strain signatures detected",
    ),
    CategoryRule(
        RiskType.VOCAL_STRAIN,
        (
            (0.8, lambda inp: _excess(inp[0]["zcr"], 0.15, 15)),
            (0.2, lambda inp: _excess(inp[0]["rms"], 0.2, 5)),
        ),
        2, 0.5,
        "Vocal roughness/strain detected",
    ),
)

_FEATURE_FIELDS = (("rms", "rms"), ("zcr", "zcr"), ("pause_ratio", "pauseRatio"), ("speech_rate", "speechRate"))
_REPORT_FIELDS = (("stress", "stress"),)
_BASELINE_FIELDS = (("avg_energy", "avgEnergy"),)


def _numbers(obj, prefix: str, fields) -> Dict[str, float]:
    out = {}
    for name, alias in fields:
        if isinstance(obj, Mapping):
            v = obj.get(alias, obj.get(name))
        else:
            v = getattr(obj, name, None)
        if isinstance(v, bool) or not isinstance(v, (int, float)) or not math.isfinite(v):
            raise InvalidInput(f"{prefix}.{alias}")
        out[name] = float(v)
    return out


def _inputs(features, self_report, baseline) -> Inputs:
    return (
        _numbers(features, "features", _FEATURE_FIELDS),
        _numbers(self_report, "selfReport", _REPORT_FIELDS),
        _numbers(baseline, "baseline", _BASELINE_FIELDS),
    )


def category_scores(features, self_report, baseline) -> Dict[RiskType, int]:
    """Percent per category, flagged or not, in rule order."""
    inp = _inputs(features, self_report, baseline)
    return {rule.type: rule.percent(inp) for rule in RULES}


def score_check_in(
    features: FeatureVector,
    self_report: SelfReport,
    baseline: Baseline,
    threshold: int = DISPLAY_THRESHOLD,
) -> List[RiskFlag]:
    """
    Map one check-in to its risk flags.
    Pure: output depends only on the arguments. Models or plain mappings
    (camelCase keys) are accepted; a bad field raises InvalidInput before
    any flag is built. Flags keep rule order and need percent > threshold.
    """
    scores = category_scores(features, self_report, baseline)
    flags = []
    for rule in RULES:
        pct = scores[rule.type]
        if pct > threshold:
            flags.append(RiskFlag(type=rule.type, score=pct, message=rule.message(pct)))
    return flags
