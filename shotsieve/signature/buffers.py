"""
Pixel buffer preparation for signature extraction.

Every feature is computed from the same working buffer: the bitmap turned
upright, converted to RGB and bilinearly resampled to a small square. This
module also holds the colour-space conversions the features need.
"""

from __future__ import annotations

from ..config import WORKING_RESOLUTION
from ..errors import SignatureError
from .dependencies import Image, ImageOps, np

# sRGB (D65) -> CIE XYZ
_RGB_TO_XYZ = np.array([
    [0.4124564, 0.3575761, 0.1804375],
    [0.2126729, 0.7151522, 0.0721750],
    [0.0193339, 0.1191920, 0.9503041],
])

# D65 reference white
_WHITE_POINT = np.array([0.95047, 1.0, 1.08883])

_LUMA_WEIGHTS = np.array([0.299, 0.587, 0.114])


def prepare_bitmap(image: Image.Image, size: int = WORKING_RESOLUTION) -> np.ndarray:
    """
    Normalize a decoded bitmap into the working RGB buffer.

    Args:
        image: Decoded PIL image in any mode
        size: Edge length of the square working buffer

    Returns:
        float array of shape (size, size, 3) with values in [0, 1]

    Raises:
        SignatureError: If the image has degenerate dimensions or cannot be converted
    """
    if image is None:
        raise SignatureError("No bitmap to analyze")

    width, height = image.size
    if width < 1 or height < 1:
        raise SignatureError(f"Degenerate bitmap dimensions {width}x{height}")

    try:
        upright = ImageOps.exif_transpose(image)
        if upright.mode != 'RGB':
            upright = upright.convert('RGB')
        resized = upright.resize((size, size), Image.Resampling.BILINEAR)
        buffer = np.asarray(resized, dtype=np.float64) / 255.0
    except (OSError, ValueError) as e:
        raise SignatureError(f"Could not normalize bitmap: {e}") from e

    if buffer.shape != (size, size, 3) or not np.all(np.isfinite(buffer)):
        raise SignatureError(f"Unexpected working buffer shape {buffer.shape}")
    return buffer


def luminance(rgb: np.ndarray) -> np.ndarray:
    """Rec. 601 luma of an RGB buffer, in [0, 1]."""
    return np.clip(rgb @ _LUMA_WEIGHTS, 0.0, 1.0)


def resample(buffer: np.ndarray, width: int, height: int) -> np.ndarray:
    """
    Bilinearly resample a 2D float buffer.

    Returns:
        float array of shape (height, width)
    """
    if buffer.ndim != 2 or buffer.size == 0:
        raise SignatureError(f"Cannot resample buffer of shape {buffer.shape}")
    img = Image.fromarray(np.ascontiguousarray(buffer, dtype=np.float32))
    resized = img.resize((width, height), Image.Resampling.BILINEAR)
    return np.asarray(resized, dtype=np.float64)


def srgb_to_linear(rgb: np.ndarray) -> np.ndarray:
    """Undo the sRGB transfer curve."""
    return np.where(rgb <= 0.04045, rgb / 12.92, ((rgb + 0.055) / 1.055) ** 2.4)


def srgb_to_lab(rgb: np.ndarray) -> np.ndarray:
    """
    Convert an sRGB buffer to CIE L*a*b*.

    Args:
        rgb: float array (..., 3) in [0, 1]

    Returns:
        float array (..., 3) with L in [0, 100] and a, b roughly in [-128, 127]
    """
    xyz = srgb_to_linear(rgb) @ _RGB_TO_XYZ.T
    ratio = xyz / _WHITE_POINT
    f = np.where(ratio > 0.008856, np.cbrt(ratio), 7.787 * ratio + 16.0 / 116.0)

    lightness = 116.0 * f[..., 1] - 16.0
    a = 500.0 * (f[..., 0] - f[..., 1])
    b = 200.0 * (f[..., 1] - f[..., 2])
    return np.stack([lightness, a, b], axis=-1)


__all__ = [
    'prepare_bitmap',
    'luminance',
    'resample',
    'srgb_to_linear',
    'srgb_to_lab',
]
