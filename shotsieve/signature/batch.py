"""
Batch signature scanning.

Processes one batch of assets sequentially: cached signatures are reused,
everything else is decoded and hashed. Failures skip the asset, and a
cancellation request stops the scan while keeping what was already computed.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from ..config import THUMBNAIL_SIZE
from ..errors import ShotSieveError
from ..models import Asset, Thumbnail
from ..sources.base import BitmapProvider, resolve_final_bitmap
from .dependencies import HAS_TQDM, _tqdm_class
from .extractor import SignatureExtractor

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    """
    Outcome of scanning one batch.

    Attributes:
        thumbnails: Signed thumbnails, in asset order
        consumed: Number of assets visited (the stream cursor advances by this)
        skipped: Identifiers whose bitmap or signature failed
        cache_hits: Signatures served from the cache
        cancelled: Scan stopped early on request
    """
    thumbnails: list = field(default_factory=list)
    consumed: int = 0
    skipped: list = field(default_factory=list)
    cache_hits: int = 0
    cancelled: bool = False


def scan_assets(
    assets: Sequence[Asset],
    bitmaps: BitmapProvider,
    extractor: SignatureExtractor,
    target_size: tuple[int, int] = THUMBNAIL_SIZE,
    cancel_event: Optional[threading.Event] = None,
    signature_cache: Optional[Any] = None,
    progress_callback: Optional[Callable[[int, int], None]] = None,
    show_progress: bool = False,
) -> ScanResult:
    """
    Compute signatures for a batch of assets, one at a time.

    Args:
        assets: Assets to scan, in stream order
        bitmaps: Provider used to decode assets that are not cached
        extractor: Signature extractor
        target_size: Thumbnail size requested from the provider
        cancel_event: Checked before every asset; when set the scan stops
        signature_cache: Optional cache with get_batch(assets) / put_batch(pairs)
        progress_callback: Optional callback(current, total)
        show_progress: Whether to show a tqdm progress bar

    Returns:
        ScanResult with the thumbnails computed so far
    """
    result = ScanResult()
    if not assets:
        return result

    cached: dict = {}
    if signature_cache is not None:
        cached = signature_cache.get_batch(list(assets))

    pbar: Optional[Any] = None
    if HAS_TQDM and show_progress and _tqdm_class is not None:
        pbar = _tqdm_class(total=len(assets), desc="Fingerprinting photos", unit="img", ncols=80)

    newly_computed: list[tuple[Asset, Any]] = []
    last_callback_time = time.time()
    callback_interval = 1.0  # seconds

    try:
        for index, asset in enumerate(assets):
            if cancel_event is not None and cancel_event.is_set():
                result.cancelled = True
                logger.debug(f"Scan cancelled after {result.consumed} of {len(assets)} assets")
                break

            signature = cached.get(asset.id)
            bitmap = None
            if signature is not None:
                result.cache_hits += 1
            else:
                try:
                    bitmap = resolve_final_bitmap(bitmaps.load(asset, target_size))
                    signature = extractor.extract(bitmap)
                    newly_computed.append((asset, signature))
                except ShotSieveError as e:
                    logger.debug(f"Skipping {asset.id}: {e}")
                    result.skipped.append(asset.id)
                except Exception as e:
                    logger.warning(f"Unexpected failure while reading {asset.id}: {e}")
                    result.skipped.append(asset.id)

            if signature is not None:
                result.thumbnails.append(Thumbnail(asset=asset, signature=signature, bitmap=bitmap))
            result.consumed = index + 1

            if pbar is not None:
                pbar.update(1)
            if progress_callback:
                now = time.time()
                if now - last_callback_time >= callback_interval or index == len(assets) - 1:
                    progress_callback(index + 1, len(assets))
                    last_callback_time = now
    finally:
        if pbar is not None:
            pbar.close()

    if signature_cache is not None and newly_computed:
        signature_cache.put_batch(newly_computed)

    if result.skipped:
        logger.info(f"Skipped {len(result.skipped)} unreadable photo(s) in this batch")

    return result


__all__ = ['ScanResult', 'scan_assets']
