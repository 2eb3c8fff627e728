"""
Colour, edge and sharpness features for the signature package.

These complement the hashes: the Lab histogram catches colour shifts the
luminance hashes miss, the edge-orientation histogram catches changes in
composition, and the sharpness score ranks members of a group.
"""

from __future__ import annotations

from typing import Sequence

from ..config import (
    EDGE_BIN_COUNT,
    EPSILON,
    LAB_AB_RANGE,
    LAB_BINS_PER_CHANNEL,
    LAB_L_RANGE,
)
from .buffers import srgb_to_lab
from .dependencies import np


def _bin_indices(values: np.ndarray, lo: float, hi: float, bins: int) -> np.ndarray:
    scaled = (values - lo) / (hi - lo) * bins
    return np.clip(np.floor(scaled), 0, bins - 1).astype(np.intp)


def lab_histogram(rgb: np.ndarray) -> tuple[tuple, tuple]:
    """
    Calculate the Lab colour histogram and mean Lab vector.

    L is binned over [0, 100], a and b over [-80, 80], 4 bins each. The three
    histograms are concatenated (12 values) and normalized by pixel count.

    Args:
        rgb: float buffer (H, W, 3) in [0, 1]

    Returns:
        Tuple of (histogram, (mean_L, mean_a, mean_b))
    """
    lab = srgb_to_lab(rgb).reshape(-1, 3)
    pixel_count = lab.shape[0]
    bins = LAB_BINS_PER_CHANNEL

    ranges = (LAB_L_RANGE, LAB_AB_RANGE, LAB_AB_RANGE)
    histogram = np.zeros(bins * 3, dtype=np.float64)
    for channel, (lo, hi) in enumerate(ranges):
        counts = np.bincount(_bin_indices(lab[:, channel], lo, hi, bins), minlength=bins)
        histogram[channel * bins:(channel + 1) * bins] = counts / pixel_count

    mean = lab.mean(axis=0)
    return tuple(float(v) for v in histogram), tuple(float(v) for v in mean)


def edge_histogram(lum: np.ndarray) -> tuple[tuple, float]:
    """
    Calculate the edge-orientation histogram and edge density.

    Gradients are central differences over interior pixels (the 1-pixel
    border is skipped). Orientations are folded into [0, pi) and bucketed
    into 8 bins, weighted by magnitude and normalized by total magnitude.

    Args:
        lum: 2D luminance buffer in [0, 1]

    Returns:
        Tuple of (histogram, mean interior gradient magnitude)
    """
    if lum.shape[0] < 3 or lum.shape[1] < 3:
        return tuple([0.0] * EDGE_BIN_COUNT), 0.0

    gx = lum[1:-1, 2:] - lum[1:-1, :-2]
    gy = lum[2:, 1:-1] - lum[:-2, 1:-1]
    magnitude = np.sqrt(gx * gx + gy * gy)
    orientation = np.mod(np.arctan2(gy, gx), np.pi)

    indices = _bin_indices(orientation, 0.0, np.pi, EDGE_BIN_COUNT)
    weighted = np.bincount(indices.ravel(), weights=magnitude.ravel(), minlength=EDGE_BIN_COUNT)
    histogram = weighted / (magnitude.sum() + EPSILON)

    return tuple(float(v) for v in histogram), float(magnitude.mean())


def sharpness_score(lum: np.ndarray) -> float:
    """
    Mean squared horizontal and vertical finite difference of a luminance buffer.

    Flat or blurred frames score near zero; detailed, in-focus frames score higher.
    """
    dx = np.diff(lum, axis=1)
    dy = np.diff(lum, axis=0)
    count = dx.size + dy.size
    if count == 0:
        return 0.0
    return float((np.square(dx).sum() + np.square(dy).sum()) / count)


def histogram_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Symmetric chi-square distance between two histograms.

    ``0.5 * sum((a_i - b_i)^2 / (a_i + b_i + eps))``; 0 for identical inputs.

    Raises:
        ValueError: If the histograms differ in length
    """
    left = np.asarray(a, dtype=np.float64)
    right = np.asarray(b, dtype=np.float64)
    if left.shape != right.shape:
        raise ValueError(f"Histogram length mismatch: {left.size} vs {right.size}")
    diff = left - right
    return float(0.5 * np.sum(diff * diff / (left + right + EPSILON)))


__all__ = [
    'lab_histogram',
    'edge_histogram',
    'sharpness_score',
    'histogram_distance',
]
