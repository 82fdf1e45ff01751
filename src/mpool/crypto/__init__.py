"""Cryptographic helpers module"""

from mpool.crypto.memo import MemoCipher

__all__ = [
    'MemoCipher',
]
