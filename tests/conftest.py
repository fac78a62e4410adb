import os
import tempfile

# Exports from tests must never land in the project's output/ directory.
# Set before islandbuilder is imported so constants pick it up.
os.environ["ISLANDBUILDER_OUTPUT_DIR"] = tempfile.mkdtemp(prefix="islandbuilder-test-")

import pytest

from islandbuilder.models import ShapeParameters


@pytest.fixture
def default_params():
    return ShapeParameters()


@pytest.fixture
def circle_params():
    """Noise-free island: the top rim is a regular 32-gon of radius 35."""
    return ShapeParameters(segments=32, height=60.0, top_radius=35.0,
                           bottom_radius=8.0, rim_noise=0.0, seed=1)
