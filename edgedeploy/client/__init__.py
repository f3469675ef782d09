"""
Control-plane client boundary.
"""

from .base_client import ControlPlaneClient
from .http_client import HttpControlPlaneClient

__all__ = [
    'ControlPlaneClient',
    'HttpControlPlaneClient',
]
