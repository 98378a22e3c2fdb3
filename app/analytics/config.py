from __future__ import annotations
from dataclasses import dataclass

@dataclass(frozen=True)
class RiskConfig:
    # typing speed ratios (current vs baseline mean interval)
    typing_fast_ratio: float = 0.7
    typing_slow_ratio: float = 1.5

    # pointer
    mouse_distance_ratio: float = 2.0
    min_interaction_ratio: float = 0.5  # move samples, not clicks

    # classification
    high_min_factors: int = 3
    medium_min_factors: int = 1

    # storage precision
    decimals: int = 2
