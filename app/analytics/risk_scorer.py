# app/analytics/risk_scorer.py
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
import structlog

from app.analytics.config import RiskConfig
from app.analytics.features import FeatureVector, resolve_baseline

log = structlog.get_logger()

NO_ANOMALIES = "No significant behavioral anomalies detected."

TYPING_FAST = "Typing speed significantly faster than usual."
TYPING_SLOW = "Typing speed significantly slower than usual."
PASSWORD_FAST = "Password typing speed faster than baseline."
PASSWORD_SLOW = "Password typing speed slower than baseline."
MOUSE_EXCESS = "Excessive mouse movement detected."
FEW_INTERACTIONS = "Too few mouse interactions (potential automation)."

class RiskLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def label(self) -> str:
        # stored label, e.g. "Medium Risk"
        return f"{self.value.capitalize()} Risk"

    @classmethod
    def from_label(cls, label: str) -> "RiskLevel":
        return cls(label.split()[0].lower())

@dataclass(frozen=True)
class RiskVerdict:
    level: RiskLevel
    details: Tuple[str, ...] = field(default_factory=tuple)
    risk_factors: int = 0

    def summary(self) -> str:
        return ". ".join(d.rstrip(".") for d in self.details) + "."

    def to_record(self) -> Dict[str, Any]:
        return {
            "score": self.level.label,
            "level": self.level.value,
            "riskFactors": self.risk_factors,
            "details": list(self.details),
        }

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> "RiskVerdict":
        level = RiskLevel(rec["level"]) if "level" in rec else RiskLevel.from_label(rec.get("score", "Low Risk"))
        details = rec.get("details") or ()
        if isinstance(details, str):
            details = (details,)
        return cls(level=level, details=tuple(details), risk_factors=int(rec.get("riskFactors", 0)))

class RiskScorer:
    """
    Compares a fresh feature vector with the user's baseline:
      - typing speed too fast / too slow (only when typing was observed)
      - password typing too fast / too slow (only when observed)
      - excessive pointer travel
      - too few pointer samples (possible automation)
    Each triggered check is one risk factor; factors are summed, not weighted.
    """
    def __init__(self, config: Optional[RiskConfig] = None):
        self.cfg = config or RiskConfig()

    def score(self, current: FeatureVector, baseline: Optional[FeatureVector] = None) -> RiskVerdict:
        base = resolve_baseline(baseline)
        details: List[str] = []

        # order matters: details are reported in check order
        self._typing_speed(current, base, details)
        self._password_speed(current, base, details)
        self._mouse_distance(current, base, details)
        self._interaction_count(current, base, details)

        factors = len(details)
        verdict = RiskVerdict(
            level=self._classify(factors),
            details=tuple(details) if details else (NO_ANOMALIES,),
            risk_factors=factors,
        )
        log.debug("risk.verdict", level=verdict.level.value, factors=factors, current=current.to_record())
        return verdict

    # ---- Rules ----

    def _typing_speed(self, cur: FeatureVector, base: FeatureVector, out: List[str]) -> None:
        if cur.avg_typing_speed <= 0:
            return
        if cur.avg_typing_speed < base.avg_typing_speed * self.cfg.typing_fast_ratio:
            out.append(TYPING_FAST)
        elif cur.avg_typing_speed > base.avg_typing_speed * self.cfg.typing_slow_ratio:
            out.append(TYPING_SLOW)

    def _password_speed(self, cur: FeatureVector, base: FeatureVector, out: List[str]) -> None:
        if cur.avg_password_typing_speed <= 0:
            return
        if cur.avg_password_typing_speed < base.avg_password_typing_speed * self.cfg.typing_fast_ratio:
            out.append(PASSWORD_FAST)
        elif cur.avg_password_typing_speed > base.avg_password_typing_speed * self.cfg.typing_slow_ratio:
            out.append(PASSWORD_SLOW)

    def _mouse_distance(self, cur: FeatureVector, base: FeatureVector, out: List[str]) -> None:
        if cur.total_mouse_distance > base.total_mouse_distance * self.cfg.mouse_distance_ratio:
            out.append(MOUSE_EXCESS)

    def _interaction_count(self, cur: FeatureVector, base: FeatureVector, out: List[str]) -> None:
        if cur.mouse_click_count < base.mouse_click_count * self.cfg.min_interaction_ratio:
            out.append(FEW_INTERACTIONS)

    def _classify(self, factors: int) -> RiskLevel:
        if factors >= self.cfg.high_min_factors:
            return RiskLevel.HIGH
        if factors >= self.cfg.medium_min_factors:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW
