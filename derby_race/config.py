import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# --- Race Balance (fixed) ---
TOTAL_HORSES = 20
HORSES_PER_RACE = 10
TOTAL_ROUNDS = 6

ROUND_DISTANCES = (1200, 1400, 1600, 1800, 2000, 2200)
MAX_RACE_DISTANCE = 2200

CONDITION_MIN = 1
CONDITION_MAX = 100

CONDITION_THRESHOLDS = {
    "excellent": 80,
    "good": 60,
    "fair": 40,
}

SPEED_FACTORS = {
    "random_min": 0.8,
    "random_max": 0.4,
    "distance_divisor": 200,
}

FRAME_SPEED = {
    "base": 0.5,
    "random_range": 0.3,
}

FINISH_LINE_POSITION = 100
ROUND_DELAY_MS = 1500
FALLBACK_HORSE_SPEED = 0.5

# --- Roster Tables ---
HORSE_NAMES = (
    "Thunder Bolt",
    "Silver Arrow",
    "Golden Spirit",
    "Storm Chaser",
    "Midnight Star",
    "Wild Fire",
    "Ocean Breeze",
    "Shadow Runner",
    "Royal Flash",
    "Desert Wind",
    "Iron Will",
    "Lucky Charm",
    "Swift Justice",
    "Noble Heart",
    "Brave Warrior",
    "Dream Catcher",
    "Phoenix Rise",
    "Crystal Light",
    "Velvet Thunder",
    "Blazing Trail",
)

HORSE_COLORS = (
    "#EF4444",
    "#3B82F6",
    "#FBBF24",
    "#22C55E",
    "#A855F7",
    "#EC4899",
    "#F97316",
    "#14B8A6",
    "#6366F1",
    "#8B5CF6",
    "#06B6D4",
    "#84CC16",
    "#F43F5E",
    "#10B981",
    "#0EA5E9",
    "#D946EF",
    "#78716C",
    "#FB923C",
    "#2DD4BF",
    "#C084FC",
)

COLOR_NAMES = {
    "#EF4444": "Red",
    "#3B82F6": "Blue",
    "#FBBF24": "Yellow",
    "#22C55E": "Green",
    "#A855F7": "Purple",
    "#EC4899": "Pink",
    "#F97316": "Orange",
    "#14B8A6": "Teal",
    "#6366F1": "Indigo",
    "#8B5CF6": "Violet",
    "#06B6D4": "Cyan",
    "#84CC16": "Lime",
    "#F43F5E": "Rose",
    "#10B981": "Emerald",
    "#0EA5E9": "Sky",
    "#D946EF": "Fuchsia",
    "#78716C": "Stone",
    "#FB923C": "Amber",
    "#2DD4BF": "Aqua",
    "#C084FC": "Orchid",
}

# --- Notifications ---
NOTIFICATION_DEFAULT_DURATION_MS = 3000
NOTIFICATION_ERROR_DURATION_MS = 5000


def get_setting(name, default=None, cast=str):
    """
    Reads a host-side setting from the environment.
    Falls back to the default when the variable is unset or cannot be cast.
    Example: get_setting('DERBY_FRAME_RATE', 60, int)
    """
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default

    try:
        return cast(raw)
    except (TypeError, ValueError):
        print(f"Warning: Could not parse setting {name}={raw!r}, using {default!r}")
        return default


# --- Host Settings (environment) ---
FRAME_RATE = get_setting("DERBY_FRAME_RATE", 60, int)
LOG_LEVEL = get_setting("DERBY_LOG_LEVEL", "INFO")
RANDOM_SEED = get_setting("DERBY_RANDOM_SEED", None, int)
