"""
Unit tests for scene profiles, thresholds and the similarity decision.
"""

import pytest

from conftest import build_signature, build_thumbnail
from shotsieve.models import Asset
from shotsieve.similarity import (
    BASE_THRESHOLDS,
    SceneProfile,
    SimilarityEvaluator,
    SimilarityPreset,
    SimilarityTuning,
    classify_scene,
    is_similar,
    measure,
    passes,
    preset_for_tuning,
    resolve_profile,
    signatures_match,
    thresholds_for,
    tuning_for_preset,
)


def _asset(width=4000, height=3000):
    return Asset(id='a.jpg', pixel_width=width, pixel_height=height)


def _scenario_a_pair():
    first = build_signature()
    second = build_signature(
        average_bits=2, difference_bits=3, perceptual_bits=4,
        lab_delta=0.22, edge_delta=0.22, edge_density=0.12,
    )
    return first, second


class TestThresholds:
    """Test the per-profile threshold bundles."""

    def test_generic_base_values(self):
        """Generic thresholds under the standard tuning."""
        bundle = thresholds_for(SceneProfile.GENERIC)
        assert bundle.average_hard == 16
        assert bundle.difference_hard == 24
        assert bundle.perceptual_hard == 30
        assert bundle.lab_limit == pytest.approx(0.36)
        assert bundle.edge_limit == pytest.approx(0.32)
        assert bundle.density_tolerance == pytest.approx(0.26)

    def test_selfie_is_tightest(self):
        """Selfies have the lowest hash limits."""
        selfie = thresholds_for(SceneProfile.SELFIE)
        for profile in SceneProfile:
            assert selfie.average_hard <= thresholds_for(profile).average_hard

    def test_strict_preset(self):
        """Strict subtracts from hash limits and scales histogram limits by 0.8."""
        bundle = thresholds_for(SceneProfile.GENERIC, tuning_for_preset('strict'))
        assert bundle.average_hard == 14
        assert bundle.difference_hard == 21
        assert bundle.perceptual_hard == 26
        assert bundle.lab_limit == pytest.approx(0.288)

    def test_soft_limits_never_exceed_hard(self):
        """Offsets keep soft limits at or below hard limits."""
        tuning = SimilarityTuning(average_offset=-15)
        bundle = thresholds_for(SceneProfile.GENERIC, tuning)
        assert bundle.average_soft == 0
        assert bundle.average_hard == 1
        assert bundle.average_hard >= bundle.average_soft

    def test_hash_limits_floor_at_zero(self):
        """Very negative offsets clamp to zero."""
        bundle = thresholds_for(SceneProfile.SELFIE, SimilarityTuning(difference_offset=-100))
        assert bundle.difference_hard == 0
        assert bundle.difference_soft == 0

    def test_scale_is_clamped(self):
        """Scales outside 0.3-2.0 are clamped before use."""
        base = BASE_THRESHOLDS[SceneProfile.GENERIC]
        high = thresholds_for(SceneProfile.GENERIC, SimilarityTuning(lab_scale=10.0))
        low = thresholds_for(SceneProfile.GENERIC, SimilarityTuning(lab_scale=0.01))
        assert high.lab_limit == pytest.approx(base.lab_limit * 2.0)
        assert low.lab_limit == pytest.approx(base.lab_limit * 0.3)

    def test_limit_is_clamped(self):
        """Scaled limits stay within 0.05-1.0."""
        bundle = thresholds_for(SceneProfile.FOOD, SimilarityTuning(lab_scale=2.0, edge_scale=0.3))
        assert bundle.lab_limit == pytest.approx(0.84)
        assert bundle.edge_limit >= 0.05
        assert bundle.edge_limit == pytest.approx(0.36 * 0.3)


class TestPresets:
    """Test named tuning presets."""

    def test_public_names_resolve(self):
        """Everything the module exports exists."""
        from shotsieve import similarity

        missing = [name for name in similarity.__all__ if not hasattr(similarity, name)]
        assert missing == []

    @pytest.mark.parametrize("preset", list(SimilarityPreset))
    def test_round_trip(self, preset):
        """Every preset's tuning maps back to the preset."""
        assert preset_for_tuning(tuning_for_preset(preset.value)) == preset

    def test_standard_is_identity(self):
        """The standard preset leaves thresholds unchanged."""
        assert tuning_for_preset('standard') == SimilarityTuning()

    def test_custom_tuning_has_no_preset(self):
        """A tuning that matches no preset is custom."""
        assert preset_for_tuning(SimilarityTuning(average_offset=1)) is None

    def test_unknown_preset_raises(self):
        """Unknown names are rejected."""
        with pytest.raises(ValueError, match="Unknown preset"):
            tuning_for_preset('medium')

    def test_tuning_from_dict(self):
        """Unknown keys are ignored and missing keys default."""
        tuning = SimilarityTuning.from_dict({'average_offset': 3, 'colour': 'red'})
        assert tuning == SimilarityTuning(average_offset=3)


class TestClassifyScene:
    """Test scene profile classification."""

    def test_generic(self):
        """No faces, neutral colour, few edges."""
        assert classify_scene(_asset(), build_signature()) == SceneProfile.GENERIC

    def test_selfie(self):
        """Faces on a narrow, low-resolution frame."""
        signature = build_signature(face_count=1)
        assert classify_scene(_asset(1500, 2000), signature) == SceneProfile.SELFIE

    def test_people_on_high_resolution_portrait(self):
        """Faces on a large frame are people, not a selfie."""
        signature = build_signature(face_count=2)
        assert classify_scene(_asset(3000, 4000), signature) == SceneProfile.PEOPLE

    def test_people_on_landscape_frame(self):
        """Faces on a wide frame are people."""
        signature = build_signature(face_count=1)
        assert classify_scene(_asset(2000, 1500), signature) == SceneProfile.PEOPLE

    def test_food(self):
        """Warm, saturated colour."""
        signature = build_signature(lab_mean=(60.0, 20.0, 25.0))
        assert classify_scene(_asset(), signature) == SceneProfile.FOOD

    def test_landscape_by_blue(self):
        """Strong blue cast."""
        signature = build_signature(lab_mean=(70.0, 0.0, -12.0))
        assert classify_scene(_asset(), signature) == SceneProfile.LANDSCAPE

    def test_landscape_by_edges(self):
        """Dense edges."""
        signature = build_signature(edge_density=0.4)
        assert classify_scene(_asset(), signature) == SceneProfile.LANDSCAPE

    def test_faces_take_priority(self):
        """Faces win over food colouring."""
        signature = build_signature(face_count=1, lab_mean=(60.0, 20.0, 25.0))
        assert classify_scene(_asset(), signature) == SceneProfile.PEOPLE

    def test_accepts_thumbnail(self):
        """A thumbnail carries its own asset and signature."""
        thumbnail = build_thumbnail('t.jpg', signature=build_signature(edge_density=0.5))
        assert classify_scene(thumbnail) == SceneProfile.LANDSCAPE

    def test_needs_signature(self):
        """An asset alone cannot be classified."""
        with pytest.raises(ValueError):
            classify_scene(_asset())

    def test_resolve_profile_prefers_stricter(self):
        """The lower-valued profile governs a mixed pair."""
        assert resolve_profile(SceneProfile.GENERIC, SceneProfile.SELFIE) == SceneProfile.SELFIE
        assert resolve_profile(SceneProfile.FOOD, SceneProfile.LANDSCAPE) == SceneProfile.FOOD
        assert resolve_profile(SceneProfile.PEOPLE, SceneProfile.PEOPLE) == SceneProfile.PEOPLE


class TestDecision:
    """Test the pairwise similarity decision."""

    def test_close_pair_passes(self):
        """Small distances on every criterion pass the generic bundle."""
        first, second = _scenario_a_pair()
        m = measure(first, second)

        assert (m.average_distance, m.difference_distance, m.perceptual_distance) == (2, 3, 4)
        assert m.lab_distance == pytest.approx(0.0508, abs=0.001)
        assert m.density_gap == pytest.approx(0.02)
        assert passes(m, thresholds_for(SceneProfile.GENERIC))

    @pytest.mark.parametrize("changes", [
        {'average_bits': 17},
        {'difference_bits': 25},
        {'perceptual_bits': 31},
        {'lab_delta': 0.6},
        {'edge_delta': 0.6},
        {'edge_density': 0.40},
    ])
    def test_any_failed_criterion_rejects(self, changes):
        """Exceeding a single limit is enough to reject."""
        bundle = thresholds_for(SceneProfile.GENERIC)
        first = build_signature()
        second = build_signature(**changes)
        assert not passes(measure(first, second), bundle)
        assert not signatures_match(first, second, bundle)

    def test_limits_are_inclusive(self):
        """A distance equal to the limit still passes."""
        bundle = thresholds_for(SceneProfile.GENERIC)
        assert signatures_match(build_signature(), build_signature(average_bits=16), bundle)

    @pytest.mark.parametrize("average_bits,lab_delta", [(0, 0.0), (8, 0.3), (15, 0.5), (20, 0.1)])
    def test_short_circuit_agrees_with_measure(self, average_bits, lab_delta):
        """signatures_match gives the same answer as passes(measure())."""
        bundle = thresholds_for(SceneProfile.PEOPLE)
        first = build_signature()
        second = build_signature(average_bits=average_bits, lab_delta=lab_delta)
        assert signatures_match(first, second, bundle) == passes(measure(first, second), bundle)

    def test_stricter_profile_governs_pair(self):
        """A selfie next to a generic shot is judged by selfie limits."""
        selfie = build_thumbnail(
            'selfie.jpg', signature=build_signature(face_count=1), width=1500, height=2000,
        )
        generic = build_thumbnail('generic.jpg', signature=build_signature(average_bits=14))
        plain = build_thumbnail('plain.jpg', signature=build_signature())

        assert not is_similar(selfie, generic)
        assert is_similar(plain, generic)


class TestSimilarityEvaluator:
    """Test the caching evaluator."""

    def test_caches_profiles(self):
        """A thumbnail is classified once."""
        evaluator = SimilarityEvaluator()
        thumbnail = build_thumbnail('a.jpg')
        assert evaluator.profile_for(thumbnail) == SceneProfile.GENERIC
        assert evaluator._profiles == {'a.jpg': SceneProfile.GENERIC}

    def test_with_tuning_shares_cache(self):
        """A retuned evaluator reuses cached profiles."""
        evaluator = SimilarityEvaluator()
        evaluator.profile_for(build_thumbnail('a.jpg'))
        strict = evaluator.with_tuning(tuning_for_preset('strict'))
        assert strict._profiles is evaluator._profiles
        assert strict.tuning == tuning_for_preset('strict')

    def test_tuning_changes_decision(self):
        """Extra strict splits a pair that standard keeps together."""
        a = build_thumbnail('a.jpg')
        b = build_thumbnail('b.jpg', signature=build_signature(average_bits=14))
        assert SimilarityEvaluator().is_similar(a, b)
        assert not SimilarityEvaluator(tuning_for_preset('extra_strict')).is_similar(a, b)

    def test_forget(self):
        """Forgotten ids are reclassified on next use."""
        evaluator = SimilarityEvaluator()
        evaluator.profile_for(build_thumbnail('a.jpg'))
        evaluator.forget(['a.jpg', 'missing.jpg'])
        assert evaluator._profiles == {}
