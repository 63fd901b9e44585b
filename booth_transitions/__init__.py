"""Batch transition video generation for photo booth sessions"""

__version__ = "0.1.0"
