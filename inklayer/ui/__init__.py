"""
Qt drawing of the overlay.
"""
from .overlay_renderer import OverlayRenderer

__all__ = ['OverlayRenderer']
