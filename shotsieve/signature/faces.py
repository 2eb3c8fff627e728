"""
Face detection collaborators.

The extractor only needs a face count to pick a scene profile. Detection is
pluggable: NullFaceDetector reports no faces, HaarFaceDetector uses OpenCV's
frontal-face Haar cascade when opencv is installed.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional, Protocol

from .dependencies import Image, np

logger = logging.getLogger(__name__)

# Optional: OpenCV for Haar cascade face detection
HAS_CV2 = False
try:
    import cv2
    HAS_CV2 = True
except ImportError:
    cv2 = None


class FaceDetector(Protocol):
    """Anything that can count faces in a decoded image."""

    def count_faces(self, image: Image.Image) -> int:
        ...


class NullFaceDetector:
    """Detector used when face detection is unavailable; always 0."""

    def count_faces(self, image: Image.Image) -> int:
        return 0


class HaarFaceDetector:
    """
    Frontal-face Haar cascade detector.

    Reports 0 when OpenCV is missing or the cascade file cannot be loaded.
    """

    def __init__(
        self,
        scale_factor: float = 1.1,
        min_neighbors: int = 5,
        min_face_fraction: float = 0.08,
        cascade_path: Optional[str] = None,
    ):
        self.scale_factor = scale_factor
        self.min_neighbors = min_neighbors
        self.min_face_fraction = min_face_fraction
        self.cascade_path = cascade_path
        self._cascade: Optional[Any] = None
        self._loaded = False
        self._lock = threading.Lock()

    @property
    def available(self) -> bool:
        return self._get_cascade() is not None

    def _get_cascade(self) -> Optional[Any]:
        if not HAS_CV2:
            return None
        with self._lock:
            if not self._loaded:
                self._loaded = True
                path = self.cascade_path or (
                    cv2.data.haarcascades + "haarcascade_frontalface_default.xml"
                )
                cascade = cv2.CascadeClassifier(path)
                if cascade.empty():
                    logger.warning(f"Face cascade could not be loaded from {path}")
                else:
                    self._cascade = cascade
        return self._cascade

    def count_faces(self, image: Image.Image) -> int:
        cascade = self._get_cascade()
        if cascade is None:
            return 0

        gray = np.asarray(image.convert('L'))
        min_side = max(1, int(min(gray.shape[:2]) * self.min_face_fraction))
        faces = cascade.detectMultiScale(
            gray,
            scaleFactor=self.scale_factor,
            minNeighbors=self.min_neighbors,
            minSize=(min_side, min_side),
        )
        return len(faces)


def count_faces_safely(detector: Optional[FaceDetector], image: Image.Image) -> int:
    """
    Ask the detector for a face count.

    Any detector failure is logged and treated as "no faces".
    """
    if detector is None:
        return 0
    try:
        count = int(detector.count_faces(image))
    except Exception as e:
        logger.debug(f"Face detection failed: {e}")
        return 0
    return max(0, count)


__all__ = [
    'HAS_CV2',
    'FaceDetector',
    'NullFaceDetector',
    'HaarFaceDetector',
    'count_faces_safely',
]
