"""
Slime Mold Viewer - Entry Point

Usage:
    python -m slime_mold [preset] [--window WxH] [--size WxH] [--agents N]
                         [--seed N] [--snap STEPS] [--out DIR]

Examples:
    python -m slime_mold
    python -m slime_mold veins
    python -m slime_mold mesh --window 1600x900
    python -m slime_mold lace --size 400x400 --agents 20000 --seed 7
    python -m slime_mold all --snap 600

--size sets the field extent directly; otherwise it is derived from the
window. --snap runs headless for N steps and writes a PNG per preset.

Use --list to see all available presets.
"""

import logging
import os
import sys

from .errors import SlimeConfigError
from .presets import PRESET_ORDER, list_presets
from .simulator import grid_extent

SNAP_DT = 1.0 / 60


def _parse_pair(text):
    parts = text.lower().split("x")
    return int(parts[0]), int(parts[1])


def snap(preset, width, height, steps, agent_count=None, seed=None, out_dir=None):
    """Headless mode: run N steps per preset, save PNGs, return the paths."""
    from PIL import Image

    from .simulator import SlimeSimulator

    if out_dir is None:
        out_dir = os.path.join(
            os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))),
            "screenshots"
        )
    os.makedirs(out_dir, exist_ok=True)

    presets_to_snap = [preset] if preset != "all" else PRESET_ORDER
    paths = []
    for pkey in presets_to_snap:
        sim = SlimeSimulator(pkey, width=width, height=height,
                             agent_count=agent_count, seed=seed, warmup=False)
        print(f"  {pkey}: running {steps} steps...", end="", flush=True)
        sim.run_warmup(steps=steps, dt=SNAP_DT)

        img = Image.fromarray(sim.render())
        path = os.path.join(out_dir, f"slime_{pkey}.png")
        img.save(path)
        img.save(os.path.join(out_dir, "latest.png"))
        print(f" saved: {path}")
        paths.append(path)
    return paths


def main(argv=None):
    preset = "network"
    win_w, win_h = 1280, 720
    field_size = None
    agent_count = None
    seed = None
    snap_steps = 0
    out_dir = None

    args = sys.argv[1:] if argv is None else list(argv)
    i = 0
    try:
        while i < len(args):
            arg = args[i]
            if arg == "--size" and i + 1 < len(args):
                field_size = _parse_pair(args[i + 1])
                i += 2
            elif arg == "--window" and i + 1 < len(args):
                win_w, win_h = _parse_pair(args[i + 1])
                i += 2
            elif arg == "--agents" and i + 1 < len(args):
                agent_count = int(args[i + 1])
                i += 2
            elif arg == "--seed" and i + 1 < len(args):
                seed = int(args[i + 1])
                i += 2
            elif arg == "--snap" and i + 1 < len(args):
                snap_steps = int(args[i + 1])
                i += 2
            elif arg == "--out" and i + 1 < len(args):
                out_dir = args[i + 1]
                i += 2
            elif arg == "--list":
                print("\nAvailable presets:")
                for key, name, desc in list_presets():
                    print(f"    {key:12s} {name:20s} {desc}")
                print()
                return 0
            elif arg in ("--help", "-h"):
                print(__doc__)
                return 0
            elif arg in PRESET_ORDER or arg == "all":
                preset = arg
                i += 1
            else:
                print(f"Unknown argument: {arg}")
                print("Use --list to see available presets")
                return 2
    except (ValueError, IndexError):
        print(f"Bad value for {args[i]}: {args[i + 1] if i + 1 < len(args) else ''}")
        return 2

    logging.basicConfig(level=logging.INFO, format="[Slime] %(name)s: %(message)s")

    if field_size is None:
        field_size = grid_extent(win_w, win_h)
    width, height = field_size

    if snap_steps > 0:
        print(f"Headless snap mode: {preset} @ {width}x{height}, {snap_steps} steps")
        try:
            snap(preset, width, height, snap_steps, agent_count=agent_count,
                 seed=seed, out_dir=out_dir)
        except SlimeConfigError as e:
            print(f"Bad configuration: {e}")
            return 2
        return 0

    if preset == "all":
        preset = PRESET_ORDER[0]

    print("Starting Slime Mold Viewer")
    print(f"  Preset: {preset}")
    print(f"  Window: {win_w}x{win_h}")
    print()

    from .viewer import Viewer

    try:
        viewer = Viewer(
            width=win_w,
            height=win_h,
            start_preset=preset,
            agent_count=agent_count,
            seed=seed,
            field_size=field_size,
        )
    except SlimeConfigError as e:
        print(f"Bad configuration: {e}")
        return 2
    viewer.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
