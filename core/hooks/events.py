from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional, Dict, Any
import time
from datetime import datetime, timezone

# --- timing helpers ---
def utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")

def epoch_ms() -> float:
    # Wall-clock milliseconds, same unit the stored baselines use
    return time.time() * 1000.0

# --- core enums ---
class EventType(Enum):
    """Top-level classifier for event routing."""
    KEY = auto()
    POINTER = auto()

class FieldKind(Enum):
    GENERAL = "general"
    PASSWORD = "password"

# --- base event ---
@dataclass(frozen=True)
class BaseEvent:
    """Common shape for all input events."""
    etype: EventType = field(init=False)         # auto-set by subclasses
    t_utc: Optional[str] = None                  # lazy; materialized on serialize
    t_ms: float = field(default_factory=epoch_ms)

    def to_record(self) -> Dict[str, Any]:
        return {
            "etype": self.etype.name,
            "t_utc": self.t_utc or utc_iso(),
            "t_ms": self.t_ms,
        }

# --- key event ---
@dataclass(frozen=True)
class KeyEvent(BaseEvent):
    """Key-down in a form field. Carries timing and field kind only, never the key."""
    field_kind: FieldKind = FieldKind.GENERAL
    field_name: Optional[str] = None             # "username", "mfa", ...

    def __post_init__(self):
        object.__setattr__(self, "etype", EventType.KEY)

    def to_record(self) -> Dict[str, Any]:
        base = super().to_record()
        base.update({
            "field_kind": self.field_kind.value,
            "field_name": self.field_name,
        })
        return base

# --- pointer event ---
@dataclass(frozen=True)
class PointerEvent(BaseEvent):
    """Pointer movement sample in window coordinates."""
    x: float = 0.0
    y: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "etype", EventType.POINTER)

    def to_record(self) -> Dict[str, Any]:
        base = super().to_record()
        base.update({"x": self.x, "y": self.y})
        return base
