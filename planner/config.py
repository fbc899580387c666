"""Configuration via environment variables (a local ``.env`` is honoured)."""

import os

from dotenv import load_dotenv

load_dotenv()

# Optimizer service
API_BASE = os.getenv(
    "PLANTGRID_API_BASE", "http://localhost:8080/api"
).rstrip("/")
LIVE_SYNC_URL = os.getenv(
    "PLANTGRID_LIVE_SYNC_URL", "http://localhost:3000/api/plant-layout"
)

# Identity used when creating optimizer projects
USER_ID = os.getenv("PLANTGRID_USER_ID", "local")
PROJECT_NAME = os.getenv("PLANTGRID_PROJECT_NAME", "Plant Design")

LOG_LEVEL = os.getenv("PLANTGRID_LOG_LEVEL", "INFO")

# Grid
GRID_SIZE_MIN = 5
GRID_SIZE_MAX = 100
DEFAULT_GRID_SIZE = 30

# Canvas zoom
ZOOM_MIN = 0.5
ZOOM_MAX = 3.0
ZOOM_WHEEL_STEP = 0.001
