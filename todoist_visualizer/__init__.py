"""Todoist Visualizer: fetch favorites and filters, select items, generate placeholder images."""

__version__ = "0.1.0"
