"""
Key generation for the WireGuard router configuration manager.
"""

from keys.generator import KeyGenerator, WgKeyGenerator, KeyGenerationError

__all__ = [
    'KeyGenerator',
    'WgKeyGenerator',
    'KeyGenerationError',
]
