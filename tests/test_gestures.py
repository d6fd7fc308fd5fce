import numpy as np
import pytest

from prokon.core.gestures import GestureDisambiguator, GesturePhase, InteractionMode
from prokon.core.mask import MaskPainter
from prokon.core.viewport import Viewport, ViewportState


@pytest.fixture
def rig():
    viewport = Viewport(ViewportState(scale=2.0, offset=(10.0, 20.0)))
    painter = MaskPainter(brush_size=10)
    painter.allocate(200, 150)
    return GestureDisambiguator(viewport, painter)


def test_single_pointer_in_draw_mode_paints(rig):
    assert rig.press([(110.0, 120.0)])
    assert rig.phase is GesturePhase.PAINTING
    # (110 - 10) / 2, (120 - 20) / 2
    assert rig.painter.surface[50, 50, 3] == 255


def test_paint_move_follows_viewport_and_suppresses_scroll(rig):
    rig.press([(110.0, 120.0)])
    assert rig.move([(210.0, 120.0)]) is True
    assert rig.painter.surface[50, 75, 3] == 255
    assert rig.painter.surface[50, 100, 3] == 255


def test_paint_uses_current_transform_each_event(rig):
    rig.press([(110.0, 120.0)])
    rig.viewport.pan((100.0, 0.0))
    rig.move([(110.0, 120.0)])
    # same screen point now maps to x=0 in image space
    assert rig.painter.surface[50, 2, 3] == 255


def test_container_origin_is_subtracted(rig):
    rig.press([(160.0, 170.0)], origin=(50.0, 50.0))
    assert rig.painter.surface[50, 50, 3] == 255


def test_move_mode_pans_only(rig):
    rig.mode = InteractionMode.MOVE
    assert rig.press([(100.0, 100.0)])
    assert rig.phase is GesturePhase.PANNING
    rig.move([(130.0, 90.0)])
    rig.move([(140.0, 95.0)])
    rig.release()
    assert rig.viewport.offset == pytest.approx((50.0, 15.0))
    assert not rig.painter.surface.any()


def test_draw_mode_drag_never_pans(rig):
    before = rig.viewport.offset
    rig.press([(100.0, 100.0)])
    for x in range(100, 300, 7):
        rig.move([(float(x), 140.0)])
    rig.release()
    assert rig.viewport.offset == before
    assert rig.painter.surface.any()


def test_forced_move_overrides_draw_mode(rig):
    rig.forced_move = True
    assert rig.mode is InteractionMode.DRAW
    assert rig.effective_mode is InteractionMode.MOVE
    rig.press([(0.0, 0.0)])
    rig.move([(5.0, 5.0)])
    assert rig.phase is GesturePhase.PANNING
    assert not rig.painter.surface.any()


def test_pinch_zoom_uses_initial_distance_and_scale(rig):
    rig.viewport.zoom_to_ratio(1.0, 1.0)
    assert rig.press([(0.0, 0.0), (100.0, 0.0)])
    assert rig.phase is GesturePhase.PINCHING
    assert rig.pinch_session.initial_distance == pytest.approx(100.0)
    assert rig.pinch_session.initial_scale == pytest.approx(1.0)

    rig.move([(0.0, 0.0), (200.0, 0.0)])
    assert rig.viewport.scale == pytest.approx(2.0)
    rig.move([(0.0, 0.0), (50.0, 0.0)])
    assert rig.viewport.scale == pytest.approx(0.5)


def test_pinch_clamps_to_max(rig):
    rig.viewport.zoom_to_ratio(1.0, 8.0)
    rig.press([(0.0, 0.0), (100.0, 0.0)])
    rig.move([(0.0, 0.0), (200.0, 0.0)])
    assert rig.viewport.scale == 10.0


def test_extra_touch_points_are_ignored(rig):
    rig.viewport.zoom_to_ratio(1.0, 1.0)
    rig.press([(0.0, 0.0), (0.0, 100.0), (500.0, 500.0)])
    rig.move([(0.0, 0.0), (0.0, 300.0), (900.0, 900.0)])
    assert rig.viewport.scale == pytest.approx(3.0)


def test_second_touch_aborts_stroke(rig):
    rig.press([(30.0, 40.0)])
    rig.move([(70.0, 40.0)])
    snapshot = rig.painter.surface.copy()

    rig.move([(90.0, 40.0), (300.0, 240.0)])
    assert rig.phase is GesturePhase.PINCHING
    assert not rig.painter.is_stroking
    rig.move([(200.0, 200.0), (300.0, 240.0)])
    rig.move([(250.0, 250.0)])
    rig.release()
    assert np.array_equal(rig.painter.surface, snapshot)


def test_second_touch_press_while_painting_switches_to_pinch(rig):
    rig.press([(30.0, 40.0)])
    snapshot = rig.painter.surface.copy()
    rig.press([(30.0, 40.0), (130.0, 40.0)])
    assert rig.phase is GesturePhase.PINCHING
    rig.move([(60.0, 40.0), (130.0, 40.0)])
    assert np.array_equal(rig.painter.surface, snapshot)


def test_release_resets_sessions(rig):
    rig.press([(0.0, 0.0), (100.0, 0.0)])
    rig.release()
    assert rig.phase is GesturePhase.IDLE
    assert rig.pinch_session is None
    assert rig.pan_session is None
    assert rig.move([(10.0, 10.0)]) is False


def test_painting_without_image_is_noop():
    viewport = Viewport()
    gestures = GestureDisambiguator(viewport, MaskPainter())
    assert gestures.press([(10.0, 10.0)]) is False
    assert gestures.phase is GesturePhase.IDLE
    assert gestures.move([(20.0, 20.0)]) is False


def test_on_idle_fires_after_active_gesture():
    calls = []
    viewport = Viewport()
    painter = MaskPainter()
    painter.allocate(50, 50)
    gestures = GestureDisambiguator(viewport, painter, on_idle=lambda: calls.append(1))
    gestures.release()
    assert calls == []
    gestures.press([(5.0, 5.0)])
    gestures.release()
    assert calls == [1]


def test_pinch_with_coincident_points_rebaselines(rig):
    rig.viewport.zoom_to_ratio(1.0, 1.0)
    rig.press([(10.0, 10.0), (10.0, 10.0)])
    rig.move([(0.0, 0.0), (100.0, 0.0)])
    assert rig.viewport.scale == pytest.approx(1.0)
    rig.move([(0.0, 0.0), (150.0, 0.0)])
    assert rig.viewport.scale == pytest.approx(1.5)
