"""Spotfinder: proximity discovery engine for location-based trail games."""

__version__ = "0.1.0"
