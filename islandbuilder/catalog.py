"""Default placement catalog and JSON catalog loading."""

import json
import logging
import pathlib

from .models import PlacementSpec

logger = logging.getLogger(__name__)

# Order matters: categories consume the shared random stream in this order.
# Flowers, grass and mushrooms share one spacing bucket so small plants
# never stack; trees and rocks each repel only their own kind.
DEFAULT_CATALOG = [
    {
        'category': 'trees',
        'variants': ['Tree1', 'Tree2', 'Tree3'],
        'count': 14,
        'min_spacing': 3.0,
        'scale_range': [0.9, 1.3],
        'align_to_normal': False,
    },
    {
        'category': 'rocks',
        'variants': [f'Rock{i}' for i in range(1, 10)],
        'count': 20,
        'min_spacing': 1.8,
        'scale_range': [0.9, 1.4],
        'align_to_normal': True,
    },
    {
        'category': 'flowers',
        'variants': [f'Flower{i}' for i in range(1, 5)],
        'count': 60,
        'min_spacing': 0.9,
        'scale_range': [0.8, 1.2],
        'bucket': 'plants',
    },
    {
        'category': 'grass',
        'variants': [f'Grass{i}' for i in range(1, 5)],
        'count': 120,
        'min_spacing': 0.9,
        'scale_range': [0.9, 1.3],
        'bucket': 'plants',
    },
    {
        'category': 'mushrooms',
        'variants': [f'Mushroom{i}' for i in range(1, 5)],
        'count': 35,
        'min_spacing': 0.9,
        'scale_range': [0.8, 1.2],
        'bucket': 'plants',
    },
]


def default_placements() -> list:
    """Fresh PlacementSpec list for the built-in catalog."""
    return [PlacementSpec.from_dict(entry) for entry in DEFAULT_CATALOG]


def parse_placements(data) -> list:
    """Turn decoded catalog JSON into PlacementSpecs.

    Accepts either a list of entries or ``{"placements": [...]}``.
    """
    if isinstance(data, dict):
        data = data.get('placements')
    if not isinstance(data, list):
        raise ValueError("Catalog must be a list of placement entries "
                         "or an object with a 'placements' list")
    return [PlacementSpec.from_dict(entry) for entry in data]


def load_placements(path) -> list:
    """Read a JSON catalog file."""
    path = pathlib.Path(path)
    try:
        data = json.loads(path.read_text(encoding='utf-8'))
    except OSError as e:
        raise ValueError(f"Cannot read catalog {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"Catalog {path} is not valid JSON: {e}") from e

    placements = parse_placements(data)
    logger.info(f"Loaded {len(placements)} placement categories from {path}")
    return placements
