"""Utility functions for Todoist Visualizer."""

from .auth import authenticate_todoist, get_credentials
from .errors import (
    classify_error,
    log_error,
    validate_selection,
)
from .image_utils import PillowImageGenerator, PlaceholderImageGenerator

__all__ = [
    "authenticate_todoist",
    "get_credentials",
    "classify_error",
    "log_error",
    "validate_selection",
    "PlaceholderImageGenerator",
    "PillowImageGenerator",
]
