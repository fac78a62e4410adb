import os
import pathlib

from islandbuilder.constants import OUTPUT_DIR  # noqa: F401  (re-exported for routers)

BASE_DIR = pathlib.Path(__file__).parent.parent.absolute()

# Comma-separated list; defaults to the local Vite dev server
CORS_ORIGINS = [
    origin.strip() for origin in os.environ.get(
        "ISLANDBUILDER_CORS_ORIGINS",
        "http://localhost:5174,http://127.0.0.1:5174",
    ).split(",") if origin.strip()
]
