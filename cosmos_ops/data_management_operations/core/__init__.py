"""
Core Data Management Components

Contains the per-type document manager and its input validator.
"""

from .manager import DocumentManager
from .validator import DocumentValidator

__all__ = ['DocumentManager', 'DocumentValidator']
