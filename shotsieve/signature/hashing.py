"""
Hashing module for the signature package.

Provides the three 64-bit fingerprints (average, difference and perceptual
hash), the standalone DCT the perceptual hash is built on, and Hamming
distance between fingerprints.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Union

from ..config import DCT_SIZE, HASH_SIZE
from ..models import bits_to_hash, hash_to_int, int_to_hash
from .buffers import resample
from .dependencies import imagehash, np

HashLike = Union[imagehash.ImageHash, int]


def average_hash(lum: np.ndarray) -> imagehash.ImageHash:
    """
    Calculate the average hash of a luminance buffer.

    The buffer is resampled to 8x8; a bit is set when the sample is at or
    above the mean of all 64 samples. Bits are packed row-major, first
    sample most significant.

    Args:
        lum: 2D luminance buffer

    Returns:
        64-bit ImageHash
    """
    pixels = resample(lum, HASH_SIZE, HASH_SIZE)
    return bits_to_hash(pixels >= pixels.mean())


def difference_hash(lum: np.ndarray) -> imagehash.ImageHash:
    """
    Calculate the difference hash of a luminance buffer.

    The buffer is resampled to 9 wide by 8 high; a bit is set when a pixel
    is darker than its right-hand neighbour, in scan order.
    """
    pixels = resample(lum, HASH_SIZE + 1, HASH_SIZE)
    return bits_to_hash(pixels[:, :-1] < pixels[:, 1:])


@lru_cache(maxsize=4)
def dct_matrix(size: int) -> np.ndarray:
    """
    Orthonormal DCT-II basis.

    Row k holds the k-th cosine basis vector, so ``dct_matrix(n) @ x`` is the
    DCT-II of a length-n vector x.
    """
    n = np.arange(size)
    k = n.reshape(-1, 1)
    basis = np.cos(np.pi / size * (n + 0.5) * k)
    basis[0, :] *= np.sqrt(1.0 / size)
    basis[1:, :] *= np.sqrt(2.0 / size)
    return basis


def dct_2d(block: np.ndarray) -> np.ndarray:
    """Separable 2D DCT-II: transform every row, then every column."""
    rows, cols = block.shape
    rows_done = block @ dct_matrix(cols).T
    return dct_matrix(rows) @ rows_done


def perceptual_hash(lum: np.ndarray) -> imagehash.ImageHash:
    """
    Calculate the perceptual hash of a luminance buffer.

    Resamples to 32x32, takes the DCT, keeps the top-left 8x8 low-frequency
    block and drops the DC term. The remaining 63 coefficients are compared
    against their mean; coefficient i sets bit i-1. The 64th bit is always
    unset.
    """
    pixels = resample(lum, DCT_SIZE, DCT_SIZE)
    coefficients = dct_2d(pixels)[:HASH_SIZE, :HASH_SIZE].flatten()[1:]

    bits = np.zeros(HASH_SIZE * HASH_SIZE, dtype=bool)
    bits[:coefficients.size] = coefficients >= coefficients.mean()
    return bits_to_hash(bits)


def hamming_distance(a: HashLike, b: HashLike) -> int:
    """
    Count the differing bits between two 64-bit fingerprints.

    Accepts ImageHash objects or plain ints (mixed is fine).
    """
    if isinstance(a, imagehash.ImageHash) and isinstance(b, imagehash.ImageHash):
        return int(a - b)
    left = hash_to_int(a) if isinstance(a, imagehash.ImageHash) else int(a)
    right = hash_to_int(b) if isinstance(b, imagehash.ImageHash) else int(b)
    return bin(left ^ right).count('1')


__all__ = [
    'average_hash',
    'difference_hash',
    'perceptual_hash',
    'dct_matrix',
    'dct_2d',
    'hamming_distance',
    'hash_to_int',
    'int_to_hash',
]
