"""Configuration constants, tolerances, and paths."""

import os
import pathlib

from dotenv import load_dotenv

# ── Island shape defaults ────────────────────────────────────────────────
DEFAULT_SEGMENTS = 32
MIN_SEGMENTS = 6
MAX_SEGMENTS = 128
DEFAULT_HEIGHT = 60.0           # metres, bottom rim at Y=0
DEFAULT_TOP_RADIUS = 35.0
DEFAULT_BOTTOM_RADIUS = 8.0
DEFAULT_RIM_NOISE = 0.15        # 0 = perfect circle
MAX_RIM_NOISE = 0.5
DEFAULT_SHAPE_SEED = 1234

# ── Scatter defaults ─────────────────────────────────────────────────────
DEFAULT_SCATTER_SEED = 12345
DEFAULT_EDGE_MARGIN = 2.0       # keep items this far from the cliff edge
DEFAULT_MAX_SLOPE = 18.0        # degrees, measured against the island's up axis
DEFAULT_TRIES_PER_OBJECT = 20
DEFAULT_Y_OFFSET = 0.02         # lift to avoid z-fighting

# ── Surface probe ────────────────────────────────────────────────────────
PROBE_LIFT = 0.75               # ray starts this far above the candidate
PROBE_LENGTH = 2.0

# ── Top-surface extraction tolerances ────────────────────────────────────
TOP_PLANE_EPS_FRACTION = 0.0005   # x max(1, top_radius)
RIM_MERGE_DIST_SQ = 1e-6          # squared XZ distance for duplicate rim points
CENTER_EXCLUSION_FRACTION = 0.05  # x top_radius
CENTER_EXCLUSION_MIN = 0.1
INSET_MIN_RADIAL = 1e-4
FAN_AREA_EPS = 1e-8
FALLBACK_MIN_RADIUS = 0.1

# ── Export colours (RGBA, 0-1) ───────────────────────────────────────────
EXPORT_COLORS = {
    'cap':       [0.36, 0.62, 0.30, 1.0],   # grass
    'walls':     [0.50, 0.46, 0.42, 1.0],   # rock
    'trees':     [0.18, 0.45, 0.18, 1.0],
    'rocks':     [0.60, 0.58, 0.55, 1.0],
    'flowers':   [0.92, 0.55, 0.70, 1.0],
    'grass':     [0.40, 0.70, 0.30, 1.0],
    'mushrooms': [0.85, 0.25, 0.20, 1.0],
}
DEFAULT_PROXY_COLOR = [0.8, 0.8, 0.8, 1.0]

# Load environment variables
load_dotenv()

# Configure base paths
BASE_DIR = pathlib.Path(__file__).parent.parent.absolute()
OUTPUT_DIR = pathlib.Path(
    os.environ.get("ISLANDBUILDER_OUTPUT_DIR", "") or BASE_DIR / "output")

LOG_LEVEL = os.environ.get("ISLANDBUILDER_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

