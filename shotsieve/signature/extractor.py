"""
Signature extraction.

Turns one decoded bitmap into a fixed-size Signature: three 64-bit hashes,
Lab colour histogram and mean, edge-orientation histogram and density,
sharpness, and a face count.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..config import WORKING_RESOLUTION
from ..errors import SignatureError
from ..models import Signature
from .buffers import luminance, prepare_bitmap
from .dependencies import Image, ImageOps
from .faces import FaceDetector, count_faces_safely
from .features import edge_histogram, lab_histogram, sharpness_score
from .hashing import average_hash, difference_hash, perceptual_hash

logger = logging.getLogger(__name__)


class SignatureExtractor:
    """
    Computes similarity signatures from decoded bitmaps.

    Usage:
        extractor = SignatureExtractor(face_detector=HaarFaceDetector())
        signature = extractor.extract(image)
    """

    def __init__(
        self,
        face_detector: Optional[FaceDetector] = None,
        working_resolution: int = WORKING_RESOLUTION,
    ):
        """
        Initialize the extractor.

        Args:
            face_detector: Collaborator used for face counts. None means no faces.
            working_resolution: Edge length of the working buffer
        """
        self.face_detector = face_detector
        self.working_resolution = working_resolution

    def extract(self, image: Image.Image) -> Signature:
        """
        Compute the signature of one bitmap.

        Args:
            image: Decoded PIL image

        Returns:
            Signature for the image

        Raises:
            SignatureError: If any stage cannot produce a valid buffer
        """
        rgb = prepare_bitmap(image, self.working_resolution)
        lum = luminance(rgb)

        try:
            avg = average_hash(lum)
            diff = difference_hash(lum)
            phash = perceptual_hash(lum)
        except (OSError, ValueError) as e:
            raise SignatureError(f"Hash computation failed: {e}") from e

        lab_hist, lab_mean = lab_histogram(rgb)
        edge_hist, edge_density = edge_histogram(lum)

        return Signature(
            average_hash=avg,
            difference_hash=diff,
            perceptual_hash=phash,
            sharpness=sharpness_score(lum),
            lab_histogram=lab_hist,
            lab_mean=lab_mean,
            edge_histogram=edge_hist,
            edge_density=edge_density,
            face_count=self._count_faces(image),
        )

    def _count_faces(self, image: Image.Image) -> int:
        if self.face_detector is None:
            return 0
        try:
            upright = ImageOps.exif_transpose(image)
        except (OSError, ValueError) as e:
            logger.debug(f"Could not orient bitmap for face detection: {e}")
            return 0
        return count_faces_safely(self.face_detector, upright)


__all__ = ['SignatureExtractor']
