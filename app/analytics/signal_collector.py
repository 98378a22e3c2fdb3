# app/analytics/signal_collector.py
from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Union
import numpy as np
import structlog

from core.hooks.events import BaseEvent, KeyEvent, PointerEvent, FieldKind, epoch_ms
from app.analytics.features import FeatureVector

log = structlog.get_logger()

@dataclass
class PointerTrack:
    """Running reduction of pointer movement; no path is stored."""
    last_x: float = 0.0
    last_y: float = 0.0
    has_last: bool = False   # (0, 0) is a legitimate previous position
    move_count: int = 0
    distance: float = 0.0

class SignalCollector:
    """
    Accumulates input timing for one authentication attempt:
    - inter-key intervals from general fields
    - absolute key timestamps while the password field has focus
    - pointer move count and cumulative distance

    One instance per in-flight attempt. Callbacks are synchronous and
    never raise on bad samples; those are dropped.
    """
    def __init__(self, clock: Callable[[], float] = epoch_ms, decimals: int = 2):
        self.clock = clock
        self.decimals = decimals
        self._key_intervals: List[float] = []
        self._password_key_times: List[float] = []
        self._pointer = PointerTrack()
        self._last_key_t: Optional[float] = None

    # ---- callbacks ----

    def on_key_event(self, field_kind: Union[FieldKind, str] = FieldKind.GENERAL, t_ms: Optional[float] = None) -> None:
        # anything that is not the password field counts as general input
        if field_kind in (FieldKind.PASSWORD, FieldKind.PASSWORD.value):
            self.on_password_key_event(t_ms)
            return
        now = self._stamp(t_ms, "key")
        if now is None:
            return
        if self._last_key_t is not None:
            dt = now - self._last_key_t
            if dt < 0:
                log.debug("collector.sample.ignored", kind="key", reason="clock went backwards", dt=dt)
                return
            self._key_intervals.append(dt)
        self._last_key_t = now

    def on_password_key_event(self, t_ms: Optional[float] = None) -> None:
        now = self._stamp(t_ms, "password_key")
        if now is None:
            return
        if self._password_key_times and now < self._password_key_times[-1]:
            log.debug("collector.sample.ignored", kind="password_key", reason="clock went backwards")
            return
        self._password_key_times.append(now)

    def on_pointer_move(self, x: float, y: float) -> None:
        try:
            x, y = float(x), float(y)
        except (TypeError, ValueError):
            log.debug("collector.sample.ignored", kind="pointer", reason="not a number")
            return
        if not (math.isfinite(x) and math.isfinite(y)):
            log.debug("collector.sample.ignored", kind="pointer", reason="non-finite")
            return
        p = self._pointer
        if p.has_last:
            p.distance += math.hypot(x - p.last_x, y - p.last_y)
        p.last_x, p.last_y, p.has_last = x, y, True
        p.move_count += 1

    def _stamp(self, t_ms: Optional[float], kind: str) -> Optional[float]:
        """Event time in ms, or None when the sample is unusable."""
        try:
            now = float(self.clock() if t_ms is None else t_ms)
        except (TypeError, ValueError):
            log.debug("collector.sample.ignored", kind=kind, reason="not a number")
            return None
        if not math.isfinite(now):
            log.debug("collector.sample.ignored", kind=kind, reason="non-finite")
            return None
        return now

    def process(self, ev: BaseEvent) -> None:
        """Dispatch a host event to the matching callback."""
        if isinstance(ev, KeyEvent):
            self.on_key_event(ev.field_kind, ev.t_ms)
        elif isinstance(ev, PointerEvent):
            self.on_pointer_move(ev.x, ev.y)

    def reset(self) -> None:
        # Fresh containers so nothing handed out earlier aliases new state
        self._key_intervals = []
        self._password_key_times = []
        self._pointer = PointerTrack()
        self._last_key_t = None

    # ---- read side ----

    @property
    def key_intervals(self) -> List[float]:
        return list(self._key_intervals)

    @property
    def password_key_times(self) -> List[float]:
        return list(self._password_key_times)

    @property
    def move_count(self) -> int:
        return self._pointer.move_count

    @property
    def cumulative_distance(self) -> float:
        return self._pointer.distance

    def derive_feature_vector(self) -> FeatureVector:
        if self._key_intervals:
            avg_typing = float(np.asarray(self._key_intervals, dtype=float).mean())
        else:
            avg_typing = 0.0

        if len(self._password_key_times) > 1:
            diffs = np.diff(np.asarray(self._password_key_times, dtype=float))
            avg_password = float(diffs.mean())
        else:
            avg_password = 0.0

        return FeatureVector(
            avg_typing_speed=avg_typing,
            avg_password_typing_speed=avg_password,
            total_mouse_distance=self._pointer.distance,
            mouse_click_count=self._pointer.move_count,
        ).rounded(self.decimals)
