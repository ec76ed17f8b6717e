"""
Active Phase Detection Tests
============================
Tests for locating the onset of sustained frequent contractions.

Run with: python -m pytest tests/test_active_phase.py -v
Or:       python tests/test_active_phase.py
"""

import sys
import numpy as np
from pathlib import Path

# Add package root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from labor_core.active_phase import (
    find_short_gap_run,
    detect_active_phase_start,
)


def minutes(*values):
    """Times in seconds from minute offsets."""
    return np.array(values, dtype=float) * 60.0


class TestFindShortGapRun:
    """Tests for the gap-run search."""

    def test_run_at_start(self):
        times = minutes(0, 4, 8, 12, 16)

        assert find_short_gap_run(times) == 0

    def test_no_run(self):
        times = minutes(0, 10, 20, 30)

        assert find_short_gap_run(times) == -1

    def test_long_gap_resets_count(self):
        # Two short gaps, a long one, then three short ones
        times = minutes(0, 3, 6, 20, 23, 26, 29)

        assert find_short_gap_run(times) == 3

    def test_threshold_is_strict(self):
        times = minutes(0, 6, 12, 18, 24)

        assert find_short_gap_run(times) == -1


class TestDetectActivePhaseStart:
    """Tests for detect_active_phase_start."""

    def test_switch_from_ten_to_four_minutes(self):
        # Five contractions 10 minutes apart, then five 4 minutes apart
        times = minutes(0, 10, 20, 30, 40, 50, 54, 58, 62, 66)

        start, method = detect_active_phase_start(times)

        assert method == 'gap_run'
        assert start == 5
        print(f"[PASS] Active phase starts at index {start}")

    def test_run_starting_right_after_early_group(self):
        # Second group follows the first after only 4 minutes: the run of
        # short gaps begins at the last early contraction
        times = minutes(0, 10, 20, 30, 40, 44, 48, 52, 56, 60)

        start, method = detect_active_phase_start(times)

        assert method == 'gap_run'
        assert start == 4
        assert np.all(np.diff(times[start:]) < 6 * 60)

    def test_fallback_uses_later_half(self):
        times = minutes(*range(0, 100, 10))

        start, method = detect_active_phase_start(times)

        assert method == 'fallback'
        assert start == 5
        print("[PASS] Fallback to later half")

    def test_fallback_keeps_minimum_points(self):
        start, method = detect_active_phase_start(minutes(0, 2, 4))
        assert (start, method) == (0, 'fallback')

        start, _ = detect_active_phase_start(minutes(0, 10, 20, 30))
        assert start == 1

    def test_custom_threshold(self):
        times = minutes(0, 8, 16, 24, 32)

        start, method = detect_active_phase_start(times, gap_threshold_s=10 * 60)

        assert (start, method) == (0, 'gap_run')

    def test_empty_series(self):
        start, method = detect_active_phase_start(np.array([]))

        assert (start, method) == (0, 'fallback')


def run_all_tests():
    """Run all active phase tests."""
    print("=" * 60)
    print("Active Phase Detection Tests")
    print("=" * 60)

    test_classes = [
        TestFindShortGapRun,
        TestDetectActivePhaseStart,
    ]

    passed = 0
    failed = 0

    for test_class in test_classes:
        print(f"\n{test_class.__name__}")
        print("-" * 40)

        instance = test_class()
        methods = [m for m in dir(instance) if m.startswith('test_')]

        for method_name in methods:
            method = getattr(instance, method_name)
            try:
                method()
                passed += 1
            except Exception as e:
                print(f"[FAIL] {method_name}: {e}")
                failed += 1

    print("\n" + "=" * 60)
    print(f"Results: {passed} passed, {failed} failed")
    print("=" * 60)

    return failed == 0


if __name__ == '__main__':
    success = run_all_tests()
    sys.exit(0 if success else 1)
