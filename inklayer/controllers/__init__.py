"""
Controllers connecting user input to the annotation engine.
"""
from .drawing_controller import DrawingController, Tool

__all__ = ['DrawingController', 'Tool']
