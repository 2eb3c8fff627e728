"""
Collaborator contracts for the grouping engine.

The engine never talks to a photo library directly. It reads assets from an
AssetSource, decodes them through a BitmapProvider and removes them through a
Deleter. ListAssetSource is a ready-made in-memory source.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Protocol, Sequence

from ..errors import BitmapUnavailableError
from ..models import Asset


@dataclass(frozen=True)
class BitmapResult:
    """One delivery from a progressive bitmap provider."""
    image: Any
    is_degraded: bool = False


class AssetSource(Protocol):
    """Paged, stably ordered enumeration of assets."""

    def count(self) -> int:
        ...

    def fetch(self, offset: int, limit: int) -> list[Asset]:
        ...


class BitmapProvider(Protocol):
    """
    Decodes an asset at roughly the requested size.

    load() returns a PIL image, or an iterable of BitmapResult when the
    provider delivers progressively better versions. It raises
    BitmapUnavailableError when nothing can be decoded.
    """

    def load(self, asset: Asset, target_size: tuple[int, int]) -> Any:
        ...


class Deleter(Protocol):
    """Removes assets from the underlying library."""

    def is_authorized(self) -> bool:
        ...

    def delete(self, assets: Sequence[Asset]) -> int:
        ...


def resolve_final_bitmap(result: Any) -> Any:
    """
    Reduce a provider result to the final, non-degraded image.

    Raises:
        BitmapUnavailableError: If the provider delivered nothing usable
    """
    if result is None:
        raise BitmapUnavailableError("Provider returned no image")
    if isinstance(result, BitmapResult):
        result = [result]
    elif not isinstance(result, Iterable) or hasattr(result, 'getpixel'):
        return result

    final = None
    for delivery in result:
        if isinstance(delivery, BitmapResult):
            if not delivery.is_degraded and delivery.image is not None:
                final = delivery.image
        elif delivery is not None:
            final = delivery

    if final is None:
        raise BitmapUnavailableError("Provider delivered only degraded images")
    return final


class ListAssetSource:
    """AssetSource over an in-memory list, kept in the given order."""

    def __init__(self, assets: Iterable[Asset] = ()):
        self._assets: list[Asset] = list(assets)

    def count(self) -> int:
        return len(self._assets)

    def fetch(self, offset: int, limit: int) -> list[Asset]:
        if offset < 0 or limit <= 0:
            return []
        return self._assets[offset:offset + limit]


__all__ = [
    'BitmapResult',
    'AssetSource',
    'BitmapProvider',
    'Deleter',
    'ListAssetSource',
    'resolve_final_bitmap',
]
