"""Vesper: task scheduling backend with overlap-safe task storage"""

__version__ = "1.0.0"
