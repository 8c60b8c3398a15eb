"""
Slime Mold Parameter Presets

Each preset is a tunable parameter set known to grow a distinct kind of
network, plus how to spawn the agents ("spawn"), how many agents per
field cell ("density") and the display palette.
"""

import math

PRESETS = {
    "network": {
        "name": "Transport Network",
        "description": "Classic Physarum: thin veins joining into polygons",
        "sensor_offset": 9.0, "sensor_angle": math.pi / 4, "sensor_size": 2,
        "turn_rate": 8.0, "move_speed": 20.0, "decay": 0.97,
        "spawn": "random", "density": 0.12,
        "palette": "amber",
    },
    "veins": {
        "name": "Long Veins",
        "description": "Far-sighted agents, long straight arteries",
        "sensor_offset": 18.0, "sensor_angle": math.pi / 6, "sensor_size": 3,
        "turn_rate": 6.5, "move_speed": 28.0, "decay": 0.985,
        "spawn": "center", "density": 0.10,
        "palette": "bioluminescent",
    },
    "mesh": {
        "name": "Fine Mesh",
        "description": "Short sensors, dense cellular lattice",
        "sensor_offset": 5.5, "sensor_angle": math.pi / 3, "sensor_size": 2,
        "turn_rate": 9.5, "move_speed": 12.0, "decay": 0.95,
        "neighborhood": "moore",
        "spawn": "random", "density": 0.18,
        "palette": "moss",
    },
    "swarm": {
        "name": "Converging Swarm",
        "description": "Ring of agents collapsing into a central knot",
        "sensor_offset": 12.0, "sensor_angle": math.pi / 2.5, "sensor_size": 4,
        "turn_rate": 10.0, "move_speed": 24.0, "decay": 0.96,
        "spawn": "ring", "density": 0.08,
        "palette": "ember",
    },
    "lace": {
        "name": "Lace Bridges",
        "description": "Two colonies reaching for each other",
        "sensor_offset": 15.0, "sensor_angle": math.pi / 5, "sensor_size": 5,
        "turn_rate": 7.0, "move_speed": 16.0, "decay": 0.99,
        "edge_policy": "clamp",
        "spawn": "clusters", "density": 0.10,
        "palette": "frost",
    },
}

# Number keys 1-9 map here
PRESET_ORDER = ["network", "veins", "mesh", "swarm", "lace"]

DEFAULT_PRESET = "network"

# Keys that are SlimeParams fields (everything else is display/spawn metadata)
PARAM_KEYS = ("sensor_offset", "sensor_angle", "sensor_size", "turn_rate",
              "move_speed", "decay", "deposit_value", "neighborhood",
              "edge_policy")


def get_preset(name):
    """Get a preset by name. Returns None if not found."""
    return PRESETS.get(name)


def preset_params(preset):
    """Pull the parameter keys out of a preset dict."""
    return {k: preset[k] for k in PARAM_KEYS if k in preset}


def list_presets():
    """Return list of (key, name, description) for presets."""
    return [(k, PRESETS[k]["name"], PRESETS[k]["description"])
            for k in PRESET_ORDER if k in PRESETS]
