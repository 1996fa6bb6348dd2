from .scoring import InvalidInput, category_scores, score_check_in
from .schemas import Baseline, FeatureVector, RiskFlag, RiskType, SelfReport

__version__ = "0.1.0"
