"""Lightdash backend: project data layer and API."""

__version__ = "0.1.0"
