import math
import random

import pytest

from prokon.core.viewport import MAX_SCALE, MIN_SCALE, Viewport, ViewportState


@pytest.mark.parametrize(
    "image_size, container_size",
    [
        ((400, 300), (800, 600)),
        ((1000, 250), (390, 640)),
        ((37, 911), (1280, 720)),
        ((512, 512), (333, 777)),
        ((3, 2), (1920, 1080)),  # scale clamps to MAX_SCALE
    ],
)
def test_fit_centers_image(viewport, image_size, container_size):
    assert viewport.fit_to_screen(image_size, container_size)

    scale = viewport.scale
    off_x, off_y = viewport.offset
    left_gap = off_x
    right_gap = container_size[0] - (off_x + image_size[0] * scale)
    top_gap = off_y
    bottom_gap = container_size[1] - (off_y + image_size[1] * scale)
    assert abs(left_gap - right_gap) <= 1.0
    assert abs(top_gap - bottom_gap) <= 1.0
    assert MIN_SCALE <= scale <= MAX_SCALE


def test_fit_uses_limiting_axis(viewport):
    viewport.fit_to_screen((400, 100), (800, 600))
    assert viewport.scale == pytest.approx(2.0)
    assert viewport.offset == pytest.approx((0.0, 200.0))


@pytest.mark.parametrize("container_size", [(0, 600), (800, 0), (0, 0)])
def test_fit_defers_when_container_has_no_size(container_size):
    viewport = Viewport(ViewportState(scale=1.5, offset=(10.0, 20.0)))
    assert viewport.fit_to_screen((400, 300), container_size) is False
    assert viewport.scale == 1.5
    assert viewport.offset == (10.0, 20.0)


def test_screen_to_image_formula():
    viewport = Viewport(ViewportState(scale=2.0, offset=(30.0, -10.0)))
    assert viewport.screen_to_image((150.0, 90.0), (20.0, 40.0)) == pytest.approx((50.0, 30.0))


def test_coordinate_round_trip():
    rng = random.Random(11)
    for _ in range(200):
        scale = rng.uniform(MIN_SCALE, MAX_SCALE)
        viewport = Viewport(ViewportState(scale=scale, offset=(rng.uniform(-500, 500), rng.uniform(-500, 500))))
        origin = (rng.uniform(0, 200), rng.uniform(0, 200))
        point = (rng.uniform(-1000, 3000), rng.uniform(-1000, 3000))
        back = viewport.image_to_screen(viewport.screen_to_image(point, origin), origin)
        assert back[0] == pytest.approx(point[0], abs=1e-6)
        assert back[1] == pytest.approx(point[1], abs=1e-6)


def test_zoom_by_stays_clamped(viewport):
    rng = random.Random(3)
    for _ in range(500):
        viewport.zoom_by(rng.uniform(-20, 20))
        assert MIN_SCALE <= viewport.scale <= MAX_SCALE


def test_zoom_by_hits_bounds(viewport):
    viewport.zoom_by(100)
    assert viewport.scale == MAX_SCALE
    viewport.zoom_by(-100)
    assert viewport.scale == MIN_SCALE


def test_zoom_to_ratio_is_relative_to_base(viewport):
    viewport.zoom_to_ratio(200 / 100, 1.0)
    assert viewport.scale == pytest.approx(2.0)
    viewport.zoom_to_ratio(50 / 100, 1.0)
    assert viewport.scale == pytest.approx(0.5)
    viewport.zoom_to_ratio(4.0, 6.0)
    assert viewport.scale == MAX_SCALE


def test_pan_is_unconstrained(viewport):
    viewport.pan((-5000.0, 7000.0))
    viewport.pan((1.5, -2.5))
    assert viewport.offset == pytest.approx((-4998.5, 6997.5))


def test_non_finite_input_is_ignored(viewport):
    viewport.zoom_by(math.nan)
    viewport.pan((math.inf, 0.0))
    viewport.zoom_to_ratio(math.nan, 1.0)
    viewport.zoom_to_ratio(2.0, 0.0)
    assert viewport.scale == 1.0
    assert viewport.offset == (0.0, 0.0)


def test_zoom_percent(viewport):
    viewport.zoom_by(0.2)
    assert viewport.zoom_percent == 120
