"""
Tests for the detection overlay.
"""

import numpy as np

from models.detection import DetectedObject
from overlay.renderer import OverlayRenderer, label_origin, plan_overlay


def _det(class_name, x, y, w=20, h=30, score=0.5):
    return DetectedObject.from_xywh(class_name, score, x, y, w, h)


class TestLabelOrigin:
    def test_above_box(self):
        assert label_origin(40, 50) == (40, 45)

    def test_pinned_near_top(self):
        assert label_origin(40, 10) == (40, 10)
        assert label_origin(40, 3) == (40, 10)

    def test_just_below_threshold(self):
        assert label_origin(0, 11) == (0, 6)


class TestPlanOverlay:
    def test_one_item_per_detection_in_order(self):
        items = plan_overlay((_det("person", 10, 20), _det("dog", 50, 5, score=0.912)))

        assert [i.label for i in items] == ["person (50.0%)", "dog (91.2%)"]
        assert items[0].box == (10, 20, 30, 50)
        assert items[1].label_origin == (50, 10)


class TestOverlayRenderer:
    def test_render_shows_exactly_current_boxes(self):
        renderer = OverlayRenderer()
        renderer.render(tuple(_det("person", 5 * i, 20) for i in range(5)), 160, 120)
        assert len(renderer.items) == 5

        renderer.render((_det("dog", 10, 20), _det("cat", 60, 40)), 160, 120)

        assert len(renderer.items) == 2
        assert [i.label.split(" ")[0] for i in renderer.items] == ["dog", "cat"]

    def test_empty_render_clears_surface(self):
        renderer = OverlayRenderer()
        renderer.render((_det("person", 10, 20),), 100, 80)
        assert renderer.surface[..., 3].any()

        renderer.render((), 100, 80)

        assert renderer.items == []
        assert not renderer.surface.any()

    def test_surface_follows_frame_size(self):
        renderer = OverlayRenderer()
        renderer.render((), 640, 480)
        assert renderer.size == (640, 480)

        renderer.render((), 320, 240)

        assert renderer.size == (320, 240)
        assert renderer.surface.shape == (240, 320, 4)

    def test_box_drawn_in_configured_color(self):
        renderer = OverlayRenderer(color=(255, 0, 0), line_width=1)
        renderer.render((_det("person", 20, 20, 40, 40),), 100, 100)

        # Left edge of the box.
        pixel = renderer.surface[40, 20]
        assert tuple(pixel) == (255, 0, 0, 255)

    def test_composite_draws_over_frame(self):
        renderer = OverlayRenderer(color=(0, 255, 0), line_width=1)
        renderer.render((_det("person", 20, 20, 40, 40),), 100, 100)
        frame = np.zeros((100, 100, 3), dtype=np.uint8)

        out = renderer.composite(frame)

        assert tuple(out[40, 20]) == (0, 255, 0)
        assert tuple(out[90, 90]) == (0, 0, 0)
        assert not frame.any()

    def test_composite_size_mismatch_returns_copy(self):
        renderer = OverlayRenderer()
        renderer.render((_det("person", 1, 1),), 50, 50)
        frame = np.full((100, 100, 3), 7, dtype=np.uint8)

        out = renderer.composite(frame)

        assert out is not frame
        assert (out == 7).all()
