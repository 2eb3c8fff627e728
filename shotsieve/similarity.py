"""
Similarity decisions for shotsieve.

Each photo is classified into a coarse scene profile. A pair of photos is
judged against the threshold bundle of the stricter of their two profiles,
adjusted by the global tuning overlay (usually one of five named presets).

Thresholds per profile range from tight (selfie: faces make small changes
matter) to loose (food, landscape: handheld reframing moves a lot of pixels
without changing the shot).
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum, IntEnum
from functools import lru_cache
from typing import Optional, Union

from .config import (
    FOOD_MIN_A,
    FOOD_MIN_B,
    LANDSCAPE_MAX_B,
    LANDSCAPE_MIN_EDGE_DENSITY,
    LIMIT_RANGE,
    SELFIE_MAX_ASPECT,
    SELFIE_MAX_PIXELS,
    TUNING_SCALE_RANGE,
)
from .models import Asset, Signature, Thumbnail
from .signature.features import histogram_distance
from .signature.hashing import hamming_distance


class SceneProfile(IntEnum):
    """Scene classes; lower value wins when two photos disagree."""
    SELFIE = 0
    PEOPLE = 1
    FOOD = 2
    LANDSCAPE = 3
    GENERIC = 4


@dataclass(frozen=True)
class ThresholdBundle:
    """
    Limits a pair must stay within to count as the same shot.

    The soft hash limits are carried along with the hard ones but the
    decision only looks at the hard limits.
    """
    average_hard: int
    average_soft: int
    difference_hard: int
    difference_soft: int
    perceptual_hard: int
    perceptual_soft: int
    lab_limit: float
    edge_limit: float
    density_tolerance: float

    def to_dict(self) -> dict:
        return asdict(self)


BASE_THRESHOLDS = {
    SceneProfile.SELFIE: ThresholdBundle(
        average_hard=12, average_soft=8,
        difference_hard=18, difference_soft=12,
        perceptual_hard=24, perceptual_soft=16,
        lab_limit=0.28, edge_limit=0.26, density_tolerance=0.20,
    ),
    SceneProfile.PEOPLE: ThresholdBundle(
        average_hard=14, average_soft=9,
        difference_hard=20, difference_soft=14,
        perceptual_hard=26, perceptual_soft=18,
        lab_limit=0.32, edge_limit=0.28, density_tolerance=0.22,
    ),
    SceneProfile.FOOD: ThresholdBundle(
        average_hard=18, average_soft=12,
        difference_hard=26, difference_soft=18,
        perceptual_hard=32, perceptual_soft=24,
        lab_limit=0.42, edge_limit=0.36, density_tolerance=0.30,
    ),
    SceneProfile.LANDSCAPE: ThresholdBundle(
        average_hard=18, average_soft=12,
        difference_hard=26, difference_soft=18,
        perceptual_hard=32, perceptual_soft=24,
        lab_limit=0.40, edge_limit=0.38, density_tolerance=0.30,
    ),
    SceneProfile.GENERIC: ThresholdBundle(
        average_hard=16, average_soft=10,
        difference_hard=24, difference_soft=16,
        perceptual_hard=30, perceptual_soft=22,
        lab_limit=0.36, edge_limit=0.32, density_tolerance=0.26,
    ),
}


def _clamp(value: float, bounds: tuple[float, float]) -> float:
    lo, hi = bounds
    return max(lo, min(hi, value))


@dataclass(frozen=True)
class SimilarityTuning:
    """
    Global overlay applied on top of every profile's base thresholds.

    Attributes:
        average_offset: Added to the average-hash limits
        difference_offset: Added to the difference-hash limits
        perceptual_offset: Added to the perceptual-hash limits
        lab_scale: Multiplies the Lab histogram limit
        edge_scale: Multiplies the edge histogram limit
        density_scale: Multiplies the edge density tolerance
    """
    average_offset: int = 0
    difference_offset: int = 0
    perceptual_offset: int = 0
    lab_scale: float = 1.0
    edge_scale: float = 1.0
    density_scale: float = 1.0

    def apply(self, base: ThresholdBundle) -> ThresholdBundle:
        """Return the base bundle adjusted by this tuning."""
        def hash_limits(hard: int, soft: int, offset: int) -> tuple[int, int]:
            soft = max(0, soft + offset)
            hard = max(0, hard + offset, soft)
            return hard, soft

        average_hard, average_soft = hash_limits(base.average_hard, base.average_soft, self.average_offset)
        difference_hard, difference_soft = hash_limits(
            base.difference_hard, base.difference_soft, self.difference_offset
        )
        perceptual_hard, perceptual_soft = hash_limits(
            base.perceptual_hard, base.perceptual_soft, self.perceptual_offset
        )

        def scaled(limit: float, scale: float) -> float:
            return _clamp(limit * _clamp(scale, TUNING_SCALE_RANGE), LIMIT_RANGE)

        return ThresholdBundle(
            average_hard=average_hard,
            average_soft=average_soft,
            difference_hard=difference_hard,
            difference_soft=difference_soft,
            perceptual_hard=perceptual_hard,
            perceptual_soft=perceptual_soft,
            lab_limit=scaled(base.lab_limit, self.lab_scale),
            edge_limit=scaled(base.edge_limit, self.edge_scale),
            density_tolerance=scaled(base.density_tolerance, self.density_scale),
        )

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'SimilarityTuning':
        """Create SimilarityTuning from dictionary, ignoring unknown keys."""
        defaults = cls()
        return cls(
            average_offset=int(data.get('average_offset', defaults.average_offset)),
            difference_offset=int(data.get('difference_offset', defaults.difference_offset)),
            perceptual_offset=int(data.get('perceptual_offset', defaults.perceptual_offset)),
            lab_scale=float(data.get('lab_scale', defaults.lab_scale)),
            edge_scale=float(data.get('edge_scale', defaults.edge_scale)),
            density_scale=float(data.get('density_scale', defaults.density_scale)),
        )


class SimilarityPreset(str, Enum):
    """
    Named tuning levels.

    Attributes:
        STANDARD: Base thresholds unchanged
        STRICT: Fewer, tighter groups
        EXTRA_STRICT: Only near-identical frames
        LOOSE: More, looser groups
        EXTRA_LOOSE: Whole bursts and reframed shots
    """
    STANDARD = 'standard'
    STRICT = 'strict'
    EXTRA_STRICT = 'extra_strict'
    LOOSE = 'loose'
    EXTRA_LOOSE = 'extra_loose'


PRESET_TUNINGS = {
    SimilarityPreset.STANDARD: SimilarityTuning(),
    SimilarityPreset.STRICT: SimilarityTuning(
        average_offset=-2, difference_offset=-3, perceptual_offset=-4,
        lab_scale=0.8, edge_scale=0.8, density_scale=0.8,
    ),
    SimilarityPreset.EXTRA_STRICT: SimilarityTuning(
        average_offset=-4, difference_offset=-6, perceptual_offset=-8,
        lab_scale=0.6, edge_scale=0.6, density_scale=0.6,
    ),
    SimilarityPreset.LOOSE: SimilarityTuning(
        average_offset=2, difference_offset=3, perceptual_offset=4,
        lab_scale=1.25, edge_scale=1.25, density_scale=1.25,
    ),
    SimilarityPreset.EXTRA_LOOSE: SimilarityTuning(
        average_offset=4, difference_offset=6, perceptual_offset=8,
        lab_scale=1.5, edge_scale=1.5, density_scale=1.5,
    ),
}


def tuning_for_preset(preset: Union[str, SimilarityPreset]) -> SimilarityTuning:
    """
    Look up the tuning for a preset name.

    Raises:
        ValueError: If the preset is not recognized
    """
    try:
        preset_enum = SimilarityPreset(preset)
    except ValueError:
        valid = ', '.join(p.value for p in SimilarityPreset)
        raise ValueError(f"Unknown preset '{preset}'. Choose one of: {valid}")
    return PRESET_TUNINGS[preset_enum]


def preset_for_tuning(tuning: SimilarityTuning) -> Optional[SimilarityPreset]:
    """Name of the preset matching this tuning, or None for custom tunings."""
    for preset, preset_tuning in PRESET_TUNINGS.items():
        if preset_tuning == tuning:
            return preset
    return None


@lru_cache(maxsize=64)
def thresholds_for(profile: SceneProfile, tuning: SimilarityTuning = SimilarityTuning()) -> ThresholdBundle:
    """Tuned threshold bundle for one profile."""
    return tuning.apply(BASE_THRESHOLDS[profile])


def classify_scene(asset: Union[Asset, Thumbnail], signature: Optional[Signature] = None) -> SceneProfile:
    """
    Classify a photo into a scene profile.

    Accepts either a Thumbnail or an (asset, signature) pair.
    Priority: selfie > people > food > landscape > generic.
    """
    if isinstance(asset, Thumbnail):
        asset, signature = asset.asset, asset.signature
    if signature is None:
        raise ValueError("classify_scene needs a signature")

    if signature.face_count > 0:
        narrow = 0 < asset.aspect_ratio <= SELFIE_MAX_ASPECT
        low_resolution = 0 < asset.pixel_count <= SELFIE_MAX_PIXELS
        if narrow and low_resolution:
            return SceneProfile.SELFIE
        return SceneProfile.PEOPLE

    _, mean_a, mean_b = signature.lab_mean
    if mean_a > FOOD_MIN_A and mean_b > FOOD_MIN_B:
        return SceneProfile.FOOD
    if mean_b < LANDSCAPE_MAX_B or signature.edge_density > LANDSCAPE_MIN_EDGE_DENSITY:
        return SceneProfile.LANDSCAPE
    return SceneProfile.GENERIC


def resolve_profile(first: SceneProfile, second: SceneProfile) -> SceneProfile:
    """Profile used for a pair: the higher-priority (lower-valued) one."""
    return min(first, second)


@dataclass(frozen=True)
class SimilarityMeasurements:
    """Distances between two signatures, one per decision criterion."""
    average_distance: int
    difference_distance: int
    perceptual_distance: int
    lab_distance: float
    edge_distance: float
    density_gap: float

    def to_dict(self) -> dict:
        return asdict(self)


def measure(a: Signature, b: Signature) -> SimilarityMeasurements:
    """Compute every distance between two signatures."""
    return SimilarityMeasurements(
        average_distance=hamming_distance(a.average_hash, b.average_hash),
        difference_distance=hamming_distance(a.difference_hash, b.difference_hash),
        perceptual_distance=hamming_distance(a.perceptual_hash, b.perceptual_hash),
        lab_distance=histogram_distance(a.lab_histogram, b.lab_histogram),
        edge_distance=histogram_distance(a.edge_histogram, b.edge_histogram),
        density_gap=abs(a.edge_density - b.edge_density),
    )


def passes(m: SimilarityMeasurements, bundle: ThresholdBundle) -> bool:
    """True when every measurement is within the bundle's hard limits."""
    return (
        m.average_distance <= bundle.average_hard
        and m.difference_distance <= bundle.difference_hard
        and m.perceptual_distance <= bundle.perceptual_hard
        and m.lab_distance <= bundle.lab_limit
        and m.edge_distance <= bundle.edge_limit
        and m.density_gap <= bundle.density_tolerance
    )


def signatures_match(a: Signature, b: Signature, bundle: ThresholdBundle) -> bool:
    """
    Same decision as ``passes(measure(a, b), bundle)``, stopping at the
    first failed criterion.
    """
    if hamming_distance(a.average_hash, b.average_hash) > bundle.average_hard:
        return False
    if hamming_distance(a.difference_hash, b.difference_hash) > bundle.difference_hard:
        return False
    if hamming_distance(a.perceptual_hash, b.perceptual_hash) > bundle.perceptual_hard:
        return False
    if histogram_distance(a.lab_histogram, b.lab_histogram) > bundle.lab_limit:
        return False
    if histogram_distance(a.edge_histogram, b.edge_histogram) > bundle.edge_limit:
        return False
    return abs(a.edge_density - b.edge_density) <= bundle.density_tolerance


class SimilarityEvaluator:
    """
    Decides whether two thumbnails show the same shot.

    Scene profiles are cached per asset id, since a signature never changes
    once computed.
    """

    def __init__(self, tuning: Optional[SimilarityTuning] = None):
        self.tuning = tuning or SimilarityTuning()
        self._profiles: dict[str, SceneProfile] = {}

    def with_tuning(self, tuning: SimilarityTuning) -> 'SimilarityEvaluator':
        """Evaluator sharing this one's profile cache under a new tuning."""
        evaluator = SimilarityEvaluator(tuning)
        evaluator._profiles = self._profiles
        return evaluator

    def profile_for(self, thumbnail: Thumbnail) -> SceneProfile:
        profile = self._profiles.get(thumbnail.id)
        if profile is None:
            profile = classify_scene(thumbnail.asset, thumbnail.signature)
            self._profiles[thumbnail.id] = profile
        return profile

    def thresholds_for_pair(self, a: Thumbnail, b: Thumbnail) -> ThresholdBundle:
        profile = resolve_profile(self.profile_for(a), self.profile_for(b))
        return thresholds_for(profile, self.tuning)

    def is_similar(self, a: Thumbnail, b: Thumbnail) -> bool:
        return signatures_match(a.signature, b.signature, self.thresholds_for_pair(a, b))

    def forget(self, asset_ids) -> None:
        """Drop cached profiles, e.g. for deleted assets."""
        for asset_id in asset_ids:
            self._profiles.pop(asset_id, None)


def is_similar(a: Thumbnail, b: Thumbnail, tuning: Optional[SimilarityTuning] = None) -> bool:
    """Decide whether two thumbnails show the same shot under a tuning."""
    profile = resolve_profile(classify_scene(a), classify_scene(b))
    return signatures_match(a.signature, b.signature, thresholds_for(profile, tuning or SimilarityTuning()))


__all__ = [
    'SceneProfile',
    'ThresholdBundle',
    'BASE_THRESHOLDS',
    'SimilarityTuning',
    'SimilarityPreset',
    'PRESET_TUNINGS',
    'tuning_for_preset',
    'preset_for_tuning',
    'thresholds_for',
    'classify_scene',
    'resolve_profile',
    'SimilarityMeasurements',
    'measure',
    'passes',
    'signatures_match',
    'SimilarityEvaluator',
    'is_similar',
]
