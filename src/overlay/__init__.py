"""
Bounding-box and label overlay for the live preview.
"""

from .renderer import OverlayItem, OverlayRenderer, label_origin, plan_overlay

__all__ = ["OverlayItem", "OverlayRenderer", "label_origin", "plan_overlay"]
