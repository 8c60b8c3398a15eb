#!/usr/bin/env python3
"""
Test script for smoothed parameter infrastructure.

Verifies:
1. SmoothedParameter drift behavior
2. ParamSmoother drift over a whole parameter set
3. Simulator integration (click re-roll drifts instead of snapping)
"""

from slime_mold.params import PARAM_RANGES, SlimeParams
from slime_mold.smoothing import ParamSmoother, SmoothedParameter


def test_smoothed_parameter():
    """Test EMA drift over time."""
    print("Testing SmoothedParameter...")
    sp = SmoothedParameter(9.0, time_constant=2.0)
    sp.set_target(18.0)

    # After 1 frame at 60fps
    sp.update(1/60)
    val_1frame = sp.get_value()
    assert abs(val_1frame - 9.0) < 0.1, f"Should barely move after 1 frame: {val_1frame}"

    # After ~10 seconds (600 frames)
    for _ in range(599):
        sp.update(1/60)
    val_10s = sp.get_value()
    assert abs(val_10s - 18.0) < 0.1, f"Should be near target after 10s: {val_10s}"

    # Non-positive dt is ignored
    before = sp.get_value()
    sp.update(0.0)
    sp.update(-1.0)
    assert sp.get_value() == before

    # Test snap
    sp.snap(5.0)
    assert sp.get_value() == 5.0, "Snap should set value immediately"
    assert sp.target == 5.0, "Snap should set target too"
    assert sp.settled

    print("  ✓ SmoothedParameter working correctly")


def test_param_smoother():
    """Whole-set drift: values move toward targets, unknown keys ignored."""
    print("Testing ParamSmoother...")
    smoother = ParamSmoother(SlimeParams(), time_constant=0.5)
    assert smoother.settled
    assert set(smoother.values()) == set(PARAM_RANGES)

    smoother.set_targets(turn_rate=10.0, neighborhood="moore", bogus=1.0)
    assert not smoother.settled
    halfway = smoother.update(0.5)["turn_rate"]
    assert 8.0 < halfway < 10.0, f"Should be partway to target: {halfway}"

    for _ in range(200):
        smoother.update(1/30)
    assert abs(smoother.values()["turn_rate"] - 10.0) < 1e-3

    smoother.snap_to(SlimeParams(turn_rate=7.0))
    assert smoother.values()["turn_rate"] == 7.0
    assert smoother.settled

    print("  ✓ ParamSmoother working correctly")


def test_simulator_integration():
    """Pointer re-roll sets drift targets; the engine follows over time."""
    print("Testing Simulator integration...")
    from slime_mold.simulator import SlimeSimulator

    sim = SlimeSimulator("network", width=64, height=48, seed=3, warmup=False)
    start = sim.engine.get_params()
    sim.pointer(0.0, 0.0)
    targets = {k: sp.target for k, sp in sim.smoother.smoothed.items()}
    assert sim.engine.get_params() == start, "Engine should not snap on click"

    for _ in range(1200):
        sim.advance(1/60)
    now = sim.engine.get_params()
    for key in ("sensor_offset", "turn_rate", "move_speed"):
        assert abs(now[key] - targets[key]) < 0.05, f"{key} should reach its target"

    print("  ✓ Simulator integration working correctly")


if __name__ == "__main__":
    print("\n=== Testing Smoothed Parameter Infrastructure ===\n")

    test_smoothed_parameter()
    test_param_smoother()
    test_simulator_integration()

    print("\n✓ All tests passed!\n")
