import os

import numpy as np
import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from prokon.config import BrushConfig, ImageConfig, VisualizerConfig
from prokon.core.mask import MaskPainter
from prokon.core.viewport import Viewport
from prokon.session import VisualizerSession


@pytest.fixture
def viewport():
    return Viewport()


@pytest.fixture
def painter():
    p = MaskPainter(brush_size=20)
    p.allocate(200, 100)
    return p


@pytest.fixture
def photo():
    rng = np.random.default_rng(7)
    return rng.integers(0, 256, size=(300, 400, 3), dtype=np.uint8)


@pytest.fixture
def session(photo):
    config = VisualizerConfig(
        brush=BrushConfig(default_size=20),
        image=ImageConfig(max_side=0),
    )
    s = VisualizerSession(config)
    s.set_container_size(800, 600)
    s.load_image(photo)
    return s
