"""
Slime Mold Video-Source Pipeline

Text-only pipeline that generates the slime network as video frames.
No video input needed: the simulation is the video source.

The simulation runs in a background thread, continuously generating
frames for the MJPEG preview. When the host requests a frame it grabs
the latest one from the background sim, so there is no lag.

Optional standalone MJPEG preview server (preview_port) for local dev.
"""

import enum
import io
import threading
import time
from typing import Optional

import numpy as np
import torch
from PIL import Image
from pydantic import BaseModel, Field

from .physarum import MAX_SEED
from .presets import DEFAULT_PRESET
from .render import scale_frame
from .simulator import SlimeSimulator, grid_extent


# ── MJPEG Preview Frame Store ────────────────────────────────────────────

_frame_jpeg = None      # Latest JPEG bytes
_frame_lock = threading.Lock()

_PREVIEW_HTML = b'''<!DOCTYPE html>
<html><head><title>Slime Preview</title>
<style>
* { margin:0; padding:0; box-sizing:border-box; }
body { background:#000; display:flex; justify-content:center;
       align-items:center; height:100vh; overflow:hidden; }
img { max-width:100vw; max-height:100vh; object-fit:contain; }
.label { position:fixed; top:12px; left:16px; color:#555;
         font:13px/1 monospace; pointer-events:none; }
</style></head>
<body>
<span class="label">Slime Preview</span>
<img src="/stream">
</body></html>'''


def encode_jpeg(frame_np, quality=85):
    """(H, W, 3) float32 [0, 1] -> JPEG bytes."""
    img = Image.fromarray((frame_np * 255).clip(0, 255).astype(np.uint8))
    buf = io.BytesIO()
    img.save(buf, format='JPEG', quality=quality)
    return buf.getvalue()


def _update_mjpeg_frame(frame_np):
    """Push a new frame to the preview stream (called every render)."""
    global _frame_jpeg
    jpeg = encode_jpeg(frame_np)
    with _frame_lock:
        _frame_jpeg = jpeg


def latest_jpeg():
    with _frame_lock:
        return _frame_jpeg


# ── Fallback MJPEG Server (local dev only) ───────────────────────────────

_preview_server = None


def start_preview_server(port=8080):
    """Start the standalone MJPEG server (idempotent). Returns the server or None."""
    global _preview_server
    if _preview_server is not None:
        return _preview_server
    from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

    class _Handler(BaseHTTPRequestHandler):
        def do_GET(self):
            if self.path == '/stream':
                self.send_response(200)
                self.send_header('Content-Type',
                                 'multipart/x-mixed-replace; boundary=frame')
                self.send_header('Cache-Control', 'no-cache')
                self.end_headers()
                while True:
                    try:
                        jpeg = latest_jpeg()
                        if jpeg:
                            header = (b'--frame\r\nContent-Type: image/jpeg\r\n'
                                      b'Content-Length: ' + str(len(jpeg)).encode()
                                      + b'\r\n\r\n')
                            self.wfile.write(header + jpeg + b'\r\n')
                        time.sleep(1.0 / 30)
                    except (BrokenPipeError, ConnectionResetError, OSError):
                        break
            else:
                self.send_response(200)
                self.send_header('Content-Type', 'text/html')
                self.end_headers()
                self.wfile.write(_PREVIEW_HTML)

        def log_message(self, *args):
            pass

    try:
        server = ThreadingHTTPServer(('0.0.0.0', port), _Handler)
    except OSError as e:
        print(f"[Slime] MJPEG preview server failed: {e}")
        return None
    server.daemon_threads = True
    t = threading.Thread(target=server.serve_forever, daemon=True)
    t.start()
    _preview_server = server
    print(f"[Slime] MJPEG preview on port {port}")
    return server


def stop_preview_server():
    global _preview_server
    if _preview_server is not None:
        _preview_server.shutdown()
        _preview_server.server_close()
        _preview_server = None


# ── Background Simulation Thread ─────────────────────────────────────────

class _SlimeBackgroundSim(threading.Thread):
    """Background thread that continuously steps the simulation.

    Pushes every frame to the MJPEG store and keeps the latest frame
    available for the pipeline __call__ to grab instantly.
    """

    def __init__(self, simulator, out_size, target_fps=20, preview=True):
        super().__init__(daemon=True)
        self.simulator = simulator
        self.out_w, self.out_h = out_size
        # Held while stepping; __call__ takes it to change parameters
        self.sim_lock = threading.Lock()
        self._frame_lock = threading.Lock()
        self._latest_frame = None   # (H,W,3) float32 [0,1]
        self._stop_event = threading.Event()
        self._last_time = None
        self._target_fps = target_fps
        self._preview = preview
        self.frames = 0

    def run(self):
        print("[Slime] Background simulation thread started")
        while not self._stop_event.is_set():
            now = time.perf_counter()
            if self._last_time is None:
                dt = 1.0 / self._target_fps
            else:
                dt = now - self._last_time
            dt = max(0.001, min(dt, 0.1))
            self._last_time = now

            try:
                with self.sim_lock:
                    frame = self.simulator.render_float(dt)
                frame = scale_frame(frame, self.out_w, self.out_h)
                with self._frame_lock:
                    self._latest_frame = frame
                    self.frames += 1
                if self._preview:
                    _update_mjpeg_frame(frame)
            except Exception as e:
                print(f"[Slime] Background sim error: {e}")

            elapsed = time.perf_counter() - now
            sleep_time = max(0, (1.0 / self._target_fps) - elapsed)
            if sleep_time > 0:
                self._stop_event.wait(sleep_time)
        print("[Slime] Background simulation thread stopped")

    def get_latest_frame(self):
        """Return the most recent frame (H,W,3) float32 [0,1] or None."""
        with self._frame_lock:
            return self._latest_frame

    def stop(self):
        self._stop_event.set()


class PresetEnum(str, enum.Enum):
    """Slime presets. Hosts render enum fields as dropdowns."""
    network = "network"
    veins = "veins"
    mesh = "mesh"
    swarm = "swarm"
    lace = "lace"


class SlimePipelineConfig(BaseModel):
    """Load-time settings plus the defaults of every runtime control."""

    pipeline_id: str = "slime-mold"
    pipeline_name: str = "Slime Mold"
    pipeline_description: str = "Physarum transport network as video source"

    # Load-time
    width: int = Field(default=512, ge=16, le=4096, description="Output frame width")
    height: int = Field(default=512, ge=16, le=4096, description="Output frame height")
    grid_scale: float = Field(default=0.5, gt=0.0, le=1.0,
                              description="Field cells per output pixel")
    agent_count: Optional[int] = Field(default=None, ge=1,
                                       description="Agents (default: preset density)")
    seed: Optional[int] = Field(default=None, ge=0, le=MAX_SEED)
    target_fps: int = Field(default=20, ge=1, le=120)
    preview_port: Optional[int] = Field(default=None, ge=1, le=65535,
                                        description="Serve MJPEG preview on this port")

    # Runtime
    preset: PresetEnum = Field(default=PresetEnum(DEFAULT_PRESET))
    speed: float = Field(default=1.0, ge=0.0, le=5.0)
    brightness: float = Field(default=1.0, ge=0.1, le=3.0)
    bloom: float = Field(default=0.35, ge=0.0, le=1.0)
    show_agents: bool = False
    reseed: bool = False
    clear: bool = False


class SlimeRuntimeParams(BaseModel):
    """Per-call controls. Everything optional: missing means unchanged."""

    preset: Optional[PresetEnum] = None
    speed: Optional[float] = Field(default=None, ge=0.0, le=5.0)
    brightness: Optional[float] = Field(default=None, ge=0.1, le=3.0)
    bloom: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    show_agents: Optional[bool] = None
    reseed: Optional[bool] = None
    clear: Optional[bool] = None
    # Tunables (clamped again by SlimeParams)
    sensor_offset: Optional[float] = None
    sensor_angle: Optional[float] = None
    sensor_size: Optional[float] = None
    turn_rate: Optional[float] = None
    move_speed: Optional[float] = None
    decay: Optional[float] = None
    deposit_value: Optional[float] = None
    # Pointer, field-local coordinates
    pointer_x: Optional[float] = None
    pointer_y: Optional[float] = None
    pointer_down: Optional[bool] = None


class SlimePipeline:
    """Video-source pipeline: {"video": (1, H, W, 3) float32 tensor} per call."""

    @classmethod
    def get_config_class(cls):
        return SlimePipelineConfig

    def __init__(self, config=None, **kwargs):
        """
        Args:
            config: SlimePipelineConfig (or build one from kwargs)
        """
        if config is None:
            config = SlimePipelineConfig(**kwargs)
        self.config = config
        grid_w, grid_h = grid_extent(config.width, config.height, config.grid_scale)
        self.simulator = SlimeSimulator(
            preset_key=config.preset.value, width=grid_w, height=grid_h,
            agent_count=config.agent_count, seed=config.seed, warmup=False,
        )
        # Run warmup immediately so first frames show developed structure
        self.simulator.run_warmup()
        self.simulator.set_runtime_params(
            speed=config.speed, brightness=config.brightness, bloom=config.bloom,
            show_agents=config.show_agents,
        )
        self._pointer_down = False

        if config.preview_port is not None:
            start_preview_server(config.preview_port)

        self._bg_sim = _SlimeBackgroundSim(
            self.simulator, (config.width, config.height),
            target_fps=config.target_fps, preview=config.preview_port is not None)
        self._bg_sim.start()

    def __call__(self, prompt: str = "", **kwargs) -> dict:
        """Apply runtime params, then grab the latest frame from the background sim.

        Args:
            prompt: Ignored (text-only pipeline, no prompt needed).
            **kwargs: Runtime parameters (see SlimeRuntimeParams). Unknown
                keys are ignored.

        Returns:
            {"video": tensor} where tensor is (1, H, W, 3) float32 [0,1]
        """
        known = {k: v for k, v in kwargs.items() if k in SlimeRuntimeParams.model_fields}
        runtime = SlimeRuntimeParams(**known)
        updates = {k: v for k, v in runtime.model_dump().items()
                   if v is not None and not k.startswith("pointer_")}
        if "preset" in updates:
            updates["preset"] = getattr(updates["preset"], "value", updates["preset"])

        with self._bg_sim.sim_lock:
            preset_before = self.simulator.preset_key
            self.simulator.set_runtime_params(**updates)
            if self.simulator.preset_key != preset_before:
                self.simulator.run_warmup()
            self._apply_pointer(runtime)

        frame_np = self._bg_sim.get_latest_frame()
        if frame_np is None:
            # Background sim hasn't produced a frame yet: return black
            frame_np = np.zeros((self.config.height, self.config.width, 3), dtype=np.float32)

        tensor = torch.from_numpy(frame_np.copy()).unsqueeze(0)
        return {"video": tensor}

    def _apply_pointer(self, runtime):
        if runtime.pointer_down is None:
            return
        if runtime.pointer_down:
            x = runtime.pointer_x or 0.0
            y = runtime.pointer_y or 0.0
            # Only a fresh press re-rolls parameters; holding just moves the point
            self.simulator.pointer(x, y, randomise=False if self._pointer_down else None)
        elif self._pointer_down:
            self.simulator.release_pointer()
        self._pointer_down = runtime.pointer_down

    def close(self):
        """Stop the background thread."""
        self._bg_sim.stop()
        self._bg_sim.join(timeout=2.0)

