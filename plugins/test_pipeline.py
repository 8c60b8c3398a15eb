#!/usr/bin/env python3
"""
Tests for the video-source pipeline, its config models and plugin
registration.
"""

import time

import numpy as np
import pytest

torch = pytest.importorskip("torch")

from pydantic import ValidationError  # noqa: E402

from slime_mold.pipeline import (  # noqa: E402
    PresetEnum, SlimePipeline, SlimePipelineConfig, SlimeRuntimeParams,
    _SlimeBackgroundSim, _update_mjpeg_frame, encode_jpeg, latest_jpeg,
)
from slime_mold.plugin import register_pipelines  # noqa: E402


@pytest.fixture
def pipeline():
    pipe = SlimePipeline(width=64, height=48, agent_count=128, seed=3, target_fps=60)
    yield pipe
    pipe.close()


def _wait_for_frame(pipe, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if pipe._bg_sim.get_latest_frame() is not None:
            return True
        time.sleep(0.01)
    return False


# ── Config ───────────────────────────────────────────────────────────────

def test_config_defaults():
    config = SlimePipelineConfig()
    assert config.pipeline_id == "slime-mold"
    assert config.preset is PresetEnum.network
    assert config.preview_port is None


@pytest.mark.parametrize("kwargs", [
    {"width": 8}, {"height": 5000}, {"grid_scale": 0.0}, {"agent_count": 0},
    {"seed": -1}, {"seed": 2 ** 64}, {"speed": 9.0}, {"preset": "spiral"},
])
def test_config_rejects_out_of_range(kwargs):
    with pytest.raises(ValidationError):
        SlimePipelineConfig(**kwargs)


def test_runtime_params_all_optional():
    runtime = SlimeRuntimeParams()
    assert all(v is None for v in runtime.model_dump().values())
    with pytest.raises(ValidationError):
        SlimeRuntimeParams(bloom=2.0)


def test_preset_enum_matches_presets():
    from slime_mold.presets import PRESET_ORDER
    assert [p.value for p in PresetEnum] == PRESET_ORDER


# ── Frames ───────────────────────────────────────────────────────────────

def test_call_returns_video_tensor(pipeline):
    out = pipeline()
    video = out["video"]
    assert isinstance(video, torch.Tensor)
    assert tuple(video.shape) == (1, 48, 64, 3)
    assert video.dtype == torch.float32


def test_background_thread_produces_frames(pipeline):
    assert _wait_for_frame(pipeline)
    video = pipeline(prompt="ignored", not_a_param=1)["video"]
    assert tuple(video.shape) == (1, 48, 64, 3)
    assert 0.0 <= float(video.min()) and float(video.max()) <= 1.0


def test_runtime_params_reach_simulator(pipeline):
    pipeline(speed=2.0, brightness=1.5, show_agents=True, move_speed=12.0)
    sim = pipeline.simulator
    assert sim.sim_speed == 2.0
    assert sim.renderer.brightness == 1.5
    assert sim.renderer.show_agents
    assert sim.smoother.smoothed["move_speed"].target == 12.0


def test_preset_switch(pipeline):
    pipeline(preset="swarm")
    assert pipeline.simulator.preset_key == "swarm"
    assert pipeline.simulator.engine.spawn == "ring"


def test_pointer_press_hold_release(pipeline):
    sim = pipeline.simulator
    pipeline(pointer_down=True, pointer_x=2.0, pointer_y=-1.0)
    assert sim.engine.perturbation.active
    assert sim.engine.perturbation.point == (2.0, -1.0)
    color = sim.renderer.trail_color
    assert color is not None

    # Holding moves the point without another re-roll
    pipeline(pointer_down=True, pointer_x=4.0, pointer_y=0.0)
    assert sim.engine.perturbation.point == (4.0, 0.0)
    assert sim.renderer.trail_color == color

    pipeline(pointer_down=False)
    assert not sim.engine.perturbation.active


def test_close_stops_thread():
    pipe = SlimePipeline(width=32, height=32, agent_count=64, seed=1)
    pipe.close()
    assert not pipe._bg_sim.is_alive()


def test_background_frame_error_is_reported(capsys):
    """A failing frame is printed, not raised out of the thread loop."""
    class Failing:
        def render_float(self, dt):
            bg.stop()
            raise RuntimeError("boom")

    bg = _SlimeBackgroundSim(Failing(), (16, 16), target_fps=60, preview=False)
    bg.run()
    out = capsys.readouterr().out
    assert "[Slime] Background sim error: boom" in out
    assert "[Slime] Background simulation thread stopped" in out
    assert bg.get_latest_frame() is None


# ── Preview frame store ──────────────────────────────────────────────────

def test_encode_jpeg():
    frame = np.zeros((16, 24, 3), dtype=np.float32)
    frame[4:8] = 1.0
    jpeg = encode_jpeg(frame)
    assert jpeg[:2] == b"\xff\xd8"
    _update_mjpeg_frame(frame)
    assert latest_jpeg()[:2] == b"\xff\xd8"


# ── Registration ─────────────────────────────────────────────────────────

def test_register_pipelines():
    calls = []

    class Registry:
        def register(self, **kw):
            calls.append(kw)

    register_pipelines(Registry())
    assert len(calls) == 1
    assert calls[0]["name"] == "slime-mold"
    assert calls[0]["pipeline_class"] is SlimePipeline


if __name__ == "__main__":
    raise SystemExit(pytest.main([__file__, "-q"]))
