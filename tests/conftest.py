"""
Pytest configuration and shared fixtures for test suite.
"""

import pytest
import tempfile
import shutil
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

from PIL import Image, ImageDraw

from shotsieve.errors import BitmapUnavailableError, SignatureError
from shotsieve.grouping.engine import GroupingEngine
from shotsieve.grouping.quota import DailyQuota
from shotsieve.models import Asset, Signature, Thumbnail, int_to_hash
from shotsieve.sources.base import ListAssetSource

BASE_TIME = datetime(2024, 6, 1, 12, 0, 0)


def ones(bits: int) -> int:
    """Hash value with the lowest `bits` bits set (Hamming distance `bits` from 0)."""
    return (1 << bits) - 1


def shifted_histogram(length: int, delta: float = 0.0) -> tuple:
    """
    Two-bin histogram padded with zeros.

    The chi-square distance between delta=0 and delta=d is roughly d**2.
    """
    values = [0.0] * length
    values[0] = 0.5 + delta
    values[1] = 0.5 - delta
    return tuple(values)


def build_signature(
    average_bits: int = 0,
    difference_bits: int = 0,
    perceptual_bits: int = 0,
    lab_delta: float = 0.0,
    edge_delta: float = 0.0,
    edge_density: float = 0.10,
    sharpness: float = 1.0,
    face_count: int = 0,
    lab_mean: tuple = (50.0, 0.0, 0.0),
) -> Signature:
    return Signature(
        average_hash=int_to_hash(ones(average_bits)),
        difference_hash=int_to_hash(ones(difference_bits)),
        perceptual_hash=int_to_hash(ones(perceptual_bits)),
        sharpness=sharpness,
        lab_histogram=shifted_histogram(12, lab_delta),
        lab_mean=lab_mean,
        edge_histogram=shifted_histogram(8, edge_delta),
        edge_density=edge_density,
        face_count=face_count,
    )


def build_thumbnail(
    asset_id: str,
    minutes_ago: float = 0,
    signature: Signature = None,
    retained: bool = False,
    width: int = 4000,
    height: int = 3000,
    dated: bool = True,
) -> Thumbnail:
    asset = Asset(
        id=asset_id,
        creation_time=BASE_TIME - timedelta(minutes=minutes_ago) if dated else None,
        pixel_width=width,
        pixel_height=height,
    )
    return Thumbnail(asset=asset, signature=signature or build_signature(), is_retained=retained)


@dataclass(frozen=True)
class FakeBitmap:
    asset_id: str


class FakeBitmapProvider:
    """Hands out FakeBitmap handles; ids in `failing` raise BitmapUnavailableError."""

    def __init__(self):
        self.failing = set()
        self.loaded = []
        self.on_load = None

    def load(self, asset, target_size):
        self.loaded.append(asset.id)
        if self.on_load is not None:
            self.on_load(asset)
        if asset.id in self.failing:
            raise BitmapUnavailableError(f"cannot decode {asset.id}")
        return FakeBitmap(asset.id)


class StubExtractor:
    """Returns prepared signatures for FakeBitmap handles."""

    def __init__(self):
        self.signatures = {}

    def extract(self, bitmap):
        try:
            return self.signatures[bitmap.asset_id]
        except KeyError:
            raise SignatureError(f"no signature for {bitmap.asset_id}")


class FakeDeleter:
    """Deleter recording what it was asked to remove."""

    def __init__(self):
        self.authorized = True
        self.error = None
        self.deleted = []

    def is_authorized(self):
        return self.authorized

    def delete(self, assets):
        if self.error is not None:
            raise self.error
        self.deleted.extend(asset.id for asset in assets)
        return len(assets)


class PhotoLibrary:
    """
    In-memory photo library wired to fake collaborators.

    Photos are added newest first; each gets a prepared signature.
    """

    def __init__(self):
        self.assets = []
        self.bitmaps = FakeBitmapProvider()
        self.extractor = StubExtractor()
        self.deleter = FakeDeleter()

    def add(self, asset_id, minutes_ago, signature=None, dated=True, width=4000, height=3000):
        asset = Asset(
            id=asset_id,
            creation_time=BASE_TIME - timedelta(minutes=minutes_ago) if dated else None,
            pixel_width=width,
            pixel_height=height,
        )
        self.assets.append(asset)
        self.extractor.signatures[asset_id] = signature or build_signature()
        return asset

    def add_bursts(self, group_count, group_size=2, gap_minutes=180):
        """
        Add `group_count` bursts of identical-looking shots one minute apart,
        separated by `gap_minutes`. Later members of a burst are sharper.
        """
        for g in range(group_count):
            for i in range(group_size):
                self.add(
                    f"g{g:03d}_{i}.jpg",
                    minutes_ago=g * gap_minutes + i,
                    signature=build_signature(sharpness=1.0 + i),
                )
        return self

    @property
    def source(self):
        return ListAssetSource(self.assets)

    def engine(self, **kwargs):
        kwargs.setdefault('deleter', self.deleter)
        kwargs.setdefault('extractor', self.extractor)
        kwargs.setdefault('run_in_background', False)
        return GroupingEngine(self.source, self.bitmaps, **kwargs)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    yield Path(tmpdir)
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def temp_db(temp_dir):
    """Path for a temporary SQLite database."""
    return str(temp_dir / "test_shotsieve.db")


@pytest.fixture
def make_signature():
    """Factory for signatures with controlled distances from the all-zero hash."""
    return build_signature


@pytest.fixture
def make_thumbnail():
    """Factory for thumbnails captured `minutes_ago` minutes before a fixed time."""
    return build_thumbnail


@pytest.fixture
def photo_library():
    """Empty in-memory photo library with fake collaborators."""
    return PhotoLibrary()


@pytest.fixture
def quota():
    """Fresh in-memory quota with the default limit of 3."""
    return DailyQuota()


@pytest.fixture(autouse=True)
def isolated_user_config(tmp_path, monkeypatch):
    """Point the user configuration at an empty directory."""
    from shotsieve.user_config import get_user_config

    config_dir = tmp_path / "config"
    monkeypatch.setenv("SHOTSIEVE_CONFIG_DIR", str(config_dir))
    for name in (
        "SHOTSIEVE_WINDOW_MINUTES", "SHOTSIEVE_PRESET", "SHOTSIEVE_DAILY_LIMIT",
        "SHOTSIEVE_DETECT_FACES", "SHOTSIEVE_MTIME_FALLBACK", "SHOTSIEVE_CACHE_MAX_AGE",
        "SHOTSIEVE_DB", "SHOTSIEVE_TRASH_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    config = get_user_config()
    config.reload()
    yield config_dir
    config.reload()


def draw_scene(kind: str, size=(320, 240)) -> Image.Image:
    """
    Synthetic photo.

    'gradient': dark-to-light from left to right
    'split': bright top half over a dark bottom half
    """
    width, height = size
    img = Image.new('RGB', size, color=(20, 20, 20))
    draw = ImageDraw.Draw(img)
    if kind == 'gradient':
        for x in range(width):
            level = int(255 * x / (width - 1))
            draw.line([(x, 0), (x, height)], fill=(level, level, min(255, level + 10)))
    elif kind == 'split':
        draw.rectangle([0, 0, width, height // 2], fill=(230, 230, 220))
    else:
        raise ValueError(kind)
    return img


def save_photo(path: Path, kind: str, taken: datetime = None, orientation: int = None, size=(320, 240)) -> Path:
    """Save a synthetic JPEG with an EXIF DateTime (and optional orientation)."""
    img = draw_scene(kind, size)
    exif = Image.Exif()
    if taken is not None:
        exif[306] = taken.strftime("%Y:%m:%d %H:%M:%S")
    if orientation is not None:
        exif[274] = orientation
    img.save(path, 'JPEG', quality=95, exif=exif)
    return path


@pytest.fixture
def photo_folder(temp_dir):
    """
    Folder with a burst of two identical shots one minute apart, a
    different shot taken two hours earlier, and a text file.
    """
    folder = temp_dir / "photos"
    folder.mkdir()
    save_photo(folder / "burst_1.jpg", 'gradient', BASE_TIME)
    save_photo(folder / "burst_2.jpg", 'gradient', BASE_TIME - timedelta(minutes=1))
    save_photo(folder / "other.jpg", 'split', BASE_TIME - timedelta(hours=2))
    (folder / "notes.txt").write_text("not a photo")
    return folder
