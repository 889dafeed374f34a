# v1
# file: inventory_sim/config.py

"""
Central configuration for inventory simulation runs.
All times are in DAYS. Costs are in dollars; holding and shortage costs are per unit per day.
Distributions use the {"dist": name, "params": {...}} convention understood by
inventory_sim/distributions.py.
"""
import copy
import sys

# ----------------------------- General ----------------------------- #
SIM_DURATION = 1000.000000  # days of simulated time per replication
NUM_REPLICATIONS = 100

# ----------------------------- Output ----------------------------- #
OUTPUT_DIR = "output"
LOG_FILE = "logs/simulation.log"

# --------------------------- Inventory policy --------------------------- #
INITIAL_ON_HAND = 200.0
REQUEST_COST_PER_BATCH = 25.00  # K, set-up cost per batch requested
REQUEST_COST_PER_UNIT = 3.00  # c, production cost per unit
REQUEST_LEAD_TIME = 2.0  # L
HOLDING_COST_PER_UNIT_PER_DAY = 0.05 / 7  # h
SHORTAGE_COST_PER_UNIT_PER_DAY = 2.00 / 7  # p
REORDER_POINT = 50.0  # ROP
REQUEST_BATCH_SIZE = 200.0  # Q

# Abort a replication when more orders than this are backlogged at end of day.
MAX_BACKLOG_COUNT = 100

# --------------------------- Demand process --------------------------- #
DAILY_ORDER_COUNT_DIST = {"dist": "poisson", "params": {"lam": 4.0}}
OUTGOING_SIZE_DIST = {"dist": "gamma", "params": {"shape": 10.0, "scale": 2.0}}

# --------------------------- Random seeds --------------------------- #
GLOBAL_RANDOM_SEED = 20240101
SEED_OVERRIDE_ENV_VAR = "INVENTORY_SIM_SEED"

TUNABLE_KEYS = [
    "SIM_DURATION",
    "NUM_REPLICATIONS",
    "OUTPUT_DIR",
    "LOG_FILE",
    "INITIAL_ON_HAND",
    "REQUEST_COST_PER_BATCH",
    "REQUEST_COST_PER_UNIT",
    "REQUEST_LEAD_TIME",
    "HOLDING_COST_PER_UNIT_PER_DAY",
    "SHORTAGE_COST_PER_UNIT_PER_DAY",
    "REORDER_POINT",
    "REQUEST_BATCH_SIZE",
    "MAX_BACKLOG_COUNT",
    "DAILY_ORDER_COUNT_DIST",
    "OUTGOING_SIZE_DIST",
    "GLOBAL_RANDOM_SEED",
]

# Engine keyword -> config constant.
ENGINE_OPTION_KEYS = {
    "on_hand": "INITIAL_ON_HAND",
    "request_cost_per_batch": "REQUEST_COST_PER_BATCH",
    "request_cost_per_unit": "REQUEST_COST_PER_UNIT",
    "holding_cost_per_unit_per_day": "HOLDING_COST_PER_UNIT_PER_DAY",
    "shortage_cost_per_unit_per_day": "SHORTAGE_COST_PER_UNIT_PER_DAY",
    "request_batch_size": "REQUEST_BATCH_SIZE",
    "reorder_point": "REORDER_POINT",
    "request_lead_time": "REQUEST_LEAD_TIME",
    "outgoing_size_distribution": "OUTGOING_SIZE_DIST",
    "daily_order_count_distribution": "DAILY_ORDER_COUNT_DIST",
    "max_backlog_count": "MAX_BACKLOG_COUNT",
}


def _module():
    return sys.modules[__name__]


def current_config() -> dict:
    """Snapshot of every tunable constant, safe to dump as JSON."""
    module = _module()
    return {key: copy.deepcopy(getattr(module, key)) for key in TUNABLE_KEYS}


def apply_overrides(overrides: dict) -> dict:
    """Set known constants from ``overrides`` (keys are case-insensitive).

    Engine option names (e.g. ``reorder_point``, ``on_hand``) are accepted as
    aliases of their constants. Unknown keys raise KeyError.
    """
    module = _module()
    applied = {}
    for raw_key, value in overrides.items():
        key = ENGINE_OPTION_KEYS.get(str(raw_key).lower(), str(raw_key).upper())
        if key not in TUNABLE_KEYS:
            raise KeyError(f"Unknown configuration key {raw_key!r}; known keys: {TUNABLE_KEYS}")
        setattr(module, key, value)
        applied[key] = value
    return applied


def engine_options(**overrides) -> dict:
    """Keyword arguments for InventoryEngine built from the current constants."""
    module = _module()
    options = {option: copy.deepcopy(getattr(module, key)) for option, key in ENGINE_OPTION_KEYS.items()}
    unknown = set(overrides) - set(options)
    if unknown:
        raise KeyError(f"Unknown engine options {sorted(unknown)}")
    options.update(overrides)
    return options

