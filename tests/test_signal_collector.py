# tests/test_signal_collector.py
# How to run:
#   pytest -q
#
# Verifies:
#   - empty attempt derives an all-zero vector
#   - key intervals / password differencing / pointer reduction
#   - derive is idempotent, reset clears everything
#   - bad samples are dropped instead of raising
#   - two-decimal rounding is round-half-even on exact halves

import math

from app.analytics.signal_collector import SignalCollector
from app.analytics.features import FeatureVector
from core.hooks.events import KeyEvent, PointerEvent, FieldKind

def make_clock(*ticks):
    it = iter(ticks)
    return lambda: next(it)

def test_empty_collector_derives_zero_vector():
    col = SignalCollector()
    assert col.derive_feature_vector() == FeatureVector(0.0, 0.0, 0.0, 0)

def test_key_intervals_are_consecutive_differences():
    col = SignalCollector(clock=make_clock(1000, 1120, 1300, 1400))
    for _ in range(4):
        col.on_key_event(FieldKind.GENERAL)
    assert col.key_intervals == [120, 180, 100]
    fv = col.derive_feature_vector()
    assert fv.avg_typing_speed == round((120 + 180 + 100) / 3, 2)

def test_first_key_event_records_no_interval():
    col = SignalCollector()
    col.on_key_event("general", t_ms=5000)
    assert col.key_intervals == []
    assert col.derive_feature_vector().avg_typing_speed == 0.0

def test_password_keys_do_not_feed_general_intervals():
    col = SignalCollector()
    col.on_key_event(FieldKind.GENERAL, t_ms=0)
    col.on_key_event(FieldKind.PASSWORD, t_ms=50)
    col.on_password_key_event(t_ms=130)
    col.on_key_event(FieldKind.GENERAL, t_ms=200)
    assert col.key_intervals == [200]
    assert col.password_key_times == [50, 130]
    fv = col.derive_feature_vector()
    assert fv.avg_typing_speed == 200.0
    assert fv.avg_password_typing_speed == 80.0

def test_single_password_key_gives_zero_speed():
    col = SignalCollector()
    col.on_password_key_event(t_ms=1_700_000_000_000)
    assert col.derive_feature_vector().avg_password_typing_speed == 0.0

def test_password_average_is_rounded_to_two_decimals():
    col = SignalCollector()
    for t in (0, 100, 200, 301):
        col.on_password_key_event(t_ms=t)
    assert col.derive_feature_vector().avg_password_typing_speed == 100.33

def test_pointer_distance_and_move_count():
    col = SignalCollector()
    col.on_pointer_move(0, 0)
    col.on_pointer_move(3, 4)
    col.on_pointer_move(3, 4)
    col.on_pointer_move(6, 8)
    assert col.move_count == 4
    assert col.cumulative_distance == 10.0
    fv = col.derive_feature_vector()
    assert fv.total_mouse_distance == 10.0
    assert fv.mouse_click_count == 4

def test_origin_counts_as_previous_position():
    # (0, 0) then (0, 0) then (0, 10): the origin must still anchor the distance
    col = SignalCollector()
    col.on_pointer_move(10, 0)
    col.on_pointer_move(0, 0)
    col.on_pointer_move(0, 10)
    assert col.cumulative_distance == 20.0

def test_first_pointer_move_contributes_no_distance():
    col = SignalCollector()
    col.on_pointer_move(500, 500)
    assert col.cumulative_distance == 0.0
    assert col.move_count == 1

def test_cumulative_distance_is_non_decreasing():
    col = SignalCollector()
    seen = []
    for x, y in [(1, 1), (5, 9), (2, 2), (2, 2), (40, -3)]:
        col.on_pointer_move(x, y)
        seen.append(col.cumulative_distance)
    assert seen == sorted(seen)

def test_derive_is_idempotent_and_pure():
    col = SignalCollector()
    col.on_key_event(t_ms=0)
    col.on_key_event(t_ms=90)
    col.on_pointer_move(0, 0)
    col.on_pointer_move(30, 40)
    first = col.derive_feature_vector()
    second = col.derive_feature_vector()
    assert first == second
    assert col.key_intervals == [90]

def test_reset_clears_populated_collection():
    col = SignalCollector()
    col.on_key_event(t_ms=0)
    col.on_key_event(t_ms=100)
    col.on_password_key_event(t_ms=0)
    col.on_password_key_event(t_ms=50)
    col.on_pointer_move(1, 1)
    col.on_pointer_move(4, 5)
    col.reset()
    assert col.derive_feature_vector() == FeatureVector()
    # previous key timestamp is gone too: first key after reset records nothing
    col.on_key_event(t_ms=10_000)
    assert col.key_intervals == []
    # and the previous pointer position
    col.on_pointer_move(100, 100)
    assert col.cumulative_distance == 0.0

def test_backwards_key_timestamp_is_ignored():
    col = SignalCollector()
    col.on_key_event(t_ms=1000)
    col.on_key_event(t_ms=900)
    col.on_key_event(t_ms=1100)
    assert col.key_intervals == [100]

def test_backwards_password_timestamp_is_ignored():
    col = SignalCollector()
    col.on_password_key_event(t_ms=1000)
    col.on_password_key_event(t_ms=500)
    assert col.password_key_times == [1000]

def test_non_finite_samples_are_ignored():
    col = SignalCollector()
    col.on_key_event(t_ms=math.nan)
    col.on_password_key_event(t_ms=math.inf)
    col.on_pointer_move(math.inf, 0)
    col.on_pointer_move(0, math.nan)
    col.on_pointer_move("left", 3)
    assert col.derive_feature_vector() == FeatureVector()

def test_process_dispatches_host_events():
    col = SignalCollector()
    col.process(KeyEvent(t_ms=0))
    col.process(KeyEvent(t_ms=150))
    col.process(KeyEvent(t_ms=10, field_kind=FieldKind.PASSWORD))
    col.process(KeyEvent(t_ms=110, field_kind=FieldKind.PASSWORD))
    col.process(PointerEvent(x=0, y=0))
    col.process(PointerEvent(x=6, y=8))
    assert col.derive_feature_vector() == FeatureVector(150.0, 100.0, 10.0, 2)

def test_non_numeric_timestamps_are_ignored():
    col = SignalCollector()
    col.on_key_event(t_ms=0)
    col.on_key_event(t_ms="later")
    col.on_key_event(t_ms=120)
    col.on_password_key_event(t_ms=object())
    assert col.key_intervals == [120]
    assert col.password_key_times == []

def test_exact_halves_round_to_even():
    # 100.125 is exact in binary, so round() goes to the even digit (not 100.13)
    assert FeatureVector(100.125, 0.125, 0.0, 0).rounded() == FeatureVector(100.12, 0.12, 0.0, 0)
    col = SignalCollector()
    for t in (0, 100, 200.25):
        col.on_password_key_event(t_ms=t)
    assert col.derive_feature_vector().avg_password_typing_speed == 100.12
