"""
Services package: application wiring.
"""

from .container import ServiceContainer, get_container

__all__ = [
    'ServiceContainer',
    'get_container',
]
