"""Render-farm client services: Maya detection, scene inspection and OSS log upload."""

__version__ = "1.0.0"