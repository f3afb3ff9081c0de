"""
Runtime configuration for the hexheat viewer core.

Every value can be overridden from the environment (``HEXHEAT_*``) so the
same code runs against a local backend, a staging host, or the fallback
dataset without edits.
"""
import os


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


# ---------- Backend ----------
API_HOST = (os.environ.get("HEXHEAT_API_HOST") or "http://localhost:8080").rstrip("/")
HEATMAP_PATH = "/api/v2/heatmap/h3"
REQUEST_TIMEOUT = _env_float("HEXHEAT_TIMEOUT", 15.0)

# Viewport must stay still this long before a query is issued
SETTLE_SECONDS = _env_float("HEXHEAT_SETTLE_SECONDS", 0.15)

# ---------- Query defaults ----------
DEFAULT_METRIC = "price"
DEFAULT_BUCKET = "day"
BUCKETS = ("day", "week", "month")
DEFAULT_AT = "2025-09-08"

# Bounds are rounded to this many decimals inside cache keys
BBOX_PRECISION = 3

# Outer envelope (lower 48) as (south, west, north, east)
LOWER48_ENVELOPE = (24.9493, -125.00165, 49.5904, -66.9326)

# ---------- Camera ----------
MIN_ZOOM = 3.2  # ~ res 5
MAX_ZOOM = 9.8  # ~ res 10
START_ZOOM = 3.4

# (zoom threshold, resolution): first threshold above the zoom wins
LOD_STEPS = ((4.0, 5), (5.0, 6), (6.0, 7), (7.5, 8), (9.0, 9))
LOD_MAX_RESOLUTION = 10

# ---------- Reference region ----------
US_STATES_TOPOJSON = "https://cdn.jsdelivr.net/npm/us-atlas@3/states-10m.json"
BOUNDARY_PATH = os.environ.get("HEXHEAT_BOUNDARY_PATH", US_STATES_TOPOJSON)
BOUNDARY_LAYER = os.environ.get("HEXHEAT_BOUNDARY_LAYER", "states")
STATE = os.environ.get("HEXHEAT_STATE", "34")  # New Jersey

# Highest resolution with an exact cell set; finer resolutions test the parent
MASK_CEILING = _env_int("HEXHEAT_MASK_CEILING", 9)
# H3 containment mode used to cover the boundary ("center" or "overlap")
MASK_CONTAIN = os.environ.get("HEXHEAT_MASK_CONTAIN", "center")

# ---------- Degraded operation ----------
USE_FALLBACK = _env_flag("HEXHEAT_USE_FALLBACK", False)

FALLBACK_ROWS = (
    {"cell": "852664c3fffffff", "value": 2.9281},
    {"cell": "85268cdbfffffff", "value": 2.8894444444444445},
    {"cell": "8928308280fffff", "value": 1.2},
    {"cell": "8928308280bffff", "value": 2.8},
    {"cell": "89283082807ffff", "value": 4.5},
)

# All US state FIPS codes
STATE_FIPS = {
    "01": "AL", "02": "AK", "04": "AZ", "05": "AR", "06": "CA", "08": "CO",
    "09": "CT", "10": "DE", "11": "DC", "12": "FL", "13": "GA", "15": "HI",
    "16": "ID", "17": "IL", "18": "IN", "19": "IA", "20": "KS", "21": "KY",
    "22": "LA", "23": "ME", "24": "MD", "25": "MA", "26": "MI", "27": "MN",
    "28": "MS", "29": "MO", "30": "MT", "31": "NE", "32": "NV", "33": "NH",
    "34": "NJ", "35": "NM", "36": "NY", "37": "NC", "38": "ND", "39": "OH",
    "40": "OK", "41": "OR", "42": "PA", "44": "RI", "45": "SC", "46": "SD",
    "47": "TN", "48": "TX", "49": "UT", "50": "VT", "51": "VA", "53": "WA",
    "54": "WV", "55": "WI", "56": "WY"
}
