"""
Configuration settings for the customer flow dashboard.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Data location: a local folder, or a public base URL serving the same layout
DATA_DIR = Path(os.getenv("FLOWDASH_DATA_DIR", Path.cwd() / "data"))
PUBLIC_URL = os.getenv("PUBLIC_URL", "")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "10"))

# Map defaults
DEFAULT_TILE_STYLE = "light"
DEFAULT_ZOOM = 15
DEFAULT_MAX_ARCS = 10
FIT_PADDING = (40, 40)  # pixels
HIGHLIGHT_RADIUS_M = 300
INVALIDATE_DELAY_MS = 300

TILE_ATTRIBUTION = (
    '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> '
    'contributors &copy; <a href="https://carto.com/attributions">CARTO</a>'
)
TILE_STYLES = {
    "light": "https://{s}.basemaps.cartocdn.com/light_all/{z}/{x}/{y}{r}.png",
    "dark": "https://{s}.basemaps.cartocdn.com/dark_all/{z}/{x}/{y}{r}.png",
}
TILE_MAX_ZOOM = 19

# Animation timing (milliseconds)
FLOW_PERIOD_MS = 100
PULSE_PERIOD_MS = 50

# Arc colours, assigned in destination-rank order
ARC_PALETTE = ["#7c3aed", "#4f46e5", "#3b82f6", "#0ea5e9", "#60a5fa"]

ORIGIN_COLOR = "#3B82F6"
ORIGIN_FILL = "#93C5FD"

# Chart colours
CHART_COLORS = [
    '#3B82F6', '#10B981', '#F59E0B', '#EF4444', '#8B5CF6',
    '#EC4899', '#06B6D4', '#6366F1', '#F97316', '#84CC16',
    '#14B8A6', '#8B5CF6', '#F43F5E', '#0EA5E9', '#22D3EE',
    '#A3E635', '#FB7185'
]

ERROR_MESSAGES = {
    "FETCH_FAILED": "Failed to fetch data. Please check your connection and try again.",
    "PARSE_FAILED": "Failed to parse data. The file format might be incorrect.",
}
