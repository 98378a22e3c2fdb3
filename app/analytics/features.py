# app/analytics/features.py
from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

RECORD_KEYS = ("avgTypingSpeed", "avgPasswordTypingSpeed", "totalMouseDistance", "mouseClickCount")

def _clean(value: Any) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(v) or v < 0:
        return 0.0
    return v

@dataclass(frozen=True)
class FeatureVector:
    """
    Four-number summary of one authentication attempt.
    The same shape doubles as a user's stored baseline.
    """
    avg_typing_speed: float = 0.0            # mean general inter-key interval (ms)
    avg_password_typing_speed: float = 0.0   # mean password inter-key interval (ms)
    total_mouse_distance: float = 0.0        # px
    mouse_click_count: int = 0               # pointer MOVE samples, kept under the stored name

    def rounded(self, decimals: int = 2) -> "FeatureVector":
        return FeatureVector(
            avg_typing_speed=round(self.avg_typing_speed, decimals),
            avg_password_typing_speed=round(self.avg_password_typing_speed, decimals),
            total_mouse_distance=round(self.total_mouse_distance, decimals),
            mouse_click_count=int(self.mouse_click_count),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "avgTypingSpeed": self.avg_typing_speed,
            "avgPasswordTypingSpeed": self.avg_password_typing_speed,
            "totalMouseDistance": self.total_mouse_distance,
            "mouseClickCount": self.mouse_click_count,
        }

    @classmethod
    def from_record(cls, rec: Mapping[str, Any]) -> "FeatureVector":
        """Lenient: missing or garbage fields read as 0."""
        return cls(
            avg_typing_speed=_clean(rec.get("avgTypingSpeed")),
            avg_password_typing_speed=_clean(rec.get("avgPasswordTypingSpeed")),
            total_mouse_distance=_clean(rec.get("totalMouseDistance")),
            mouse_click_count=int(_clean(rec.get("mouseClickCount"))),
        ).rounded()

# Baseline written on first profile creation
DEFAULT_BASELINE = FeatureVector(
    avg_typing_speed=150.0,
    avg_password_typing_speed=100.0,
    total_mouse_distance=5000.0,
    mouse_click_count=20,
)

def resolve_baseline(baseline: Optional[FeatureVector]) -> FeatureVector:
    return baseline if baseline is not None else DEFAULT_BASELINE
