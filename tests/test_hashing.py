"""
Unit tests for the 64-bit fingerprints and the DCT they use.
"""

import numpy as np
import pytest

from shotsieve.models import hash_to_int, int_to_hash
from shotsieve.signature.hashing import (
    average_hash,
    dct_2d,
    dct_matrix,
    difference_hash,
    hamming_distance,
    perceptual_hash,
)


def _half_bright(size=96):
    """Luminance buffer dark on the left half, bright on the right half."""
    lum = np.zeros((size, size))
    lum[:, size // 2:] = 1.0
    return lum


class TestHammingDistance:
    """Test Hamming distance between fingerprints."""

    @pytest.mark.parametrize("value", [0, 1, 0xDEADBEEF, 0xFFFFFFFFFFFFFFFF])
    def test_identity(self, value):
        """A hash is at distance 0 from itself."""
        assert hamming_distance(value, value) == 0
        assert hamming_distance(int_to_hash(value), int_to_hash(value)) == 0

    def test_symmetric(self):
        """Distance does not depend on argument order."""
        a, b = 0x0F0F, 0xF0F1
        assert hamming_distance(a, b) == hamming_distance(b, a)

    def test_counts_differing_bits(self):
        """Each differing bit counts once."""
        assert hamming_distance(0b1011, 0b0001) == 2
        assert hamming_distance(0, 0xFFFFFFFFFFFFFFFF) == 64

    def test_mixed_types(self):
        """ImageHash and int arguments can be mixed."""
        assert hamming_distance(int_to_hash(0b111), 0) == 3

    def test_int_round_trip(self):
        """Packing preserves the first bit as most significant."""
        value = 0x8000000000000001
        assert hash_to_int(int_to_hash(value)) == value
        assert str(int_to_hash(value)) == "8000000000000001"


class TestAverageHash:
    """Test the mean-threshold fingerprint."""

    def test_flat_image_sets_every_bit(self):
        """Every sample equals the mean, so every bit is set."""
        lum = np.full((96, 96), 0.5)
        assert hash_to_int(average_hash(lum)) == 0xFFFFFFFFFFFFFFFF

    def test_bright_right_half(self):
        """Rows read 00001111 when the right half is bright."""
        assert hash_to_int(average_hash(_half_bright())) == 0x0F0F0F0F0F0F0F0F

    def test_brightness_shift_invariant(self):
        """A uniform brightness change does not alter the hash."""
        lum = _half_bright() * 0.5 + 0.2
        assert hamming_distance(average_hash(lum), average_hash(_half_bright())) == 0


class TestDifferenceHash:
    """Test the adjacent-pixel gradient fingerprint."""

    def test_flat_image_has_no_bits(self):
        """No pixel is darker than its neighbour in a flat image."""
        lum = np.full((96, 96), 0.7)
        assert hash_to_int(difference_hash(lum)) == 0

    def test_rising_edge_sets_bits(self):
        """A left-to-right rise sets at least one bit per row."""
        value = hash_to_int(difference_hash(_half_bright()))
        for row in range(8):
            assert (value >> (8 * row)) & 0xFF != 0

    def test_mirror_image_differs(self):
        """A falling edge sets fewer bits than the matching rising edge."""
        rising = difference_hash(_half_bright())
        falling = difference_hash(_half_bright()[:, ::-1])
        assert bin(hash_to_int(falling)).count("1") < bin(hash_to_int(rising)).count("1")


class TestDCT:
    """Test the standalone 2D DCT-II."""

    def test_basis_is_orthonormal(self):
        """The DCT matrix times its transpose is the identity."""
        basis = dct_matrix(32)
        np.testing.assert_allclose(basis @ basis.T, np.eye(32), atol=1e-10)

    def test_constant_block_has_only_dc(self):
        """A constant block maps to a single DC coefficient."""
        coefficients = dct_2d(np.ones((32, 32)))
        assert coefficients[0, 0] == pytest.approx(32.0)
        coefficients[0, 0] = 0.0
        assert np.abs(coefficients).max() < 1e-9

    def test_energy_preserved(self):
        """Orthonormal transform keeps the sum of squares."""
        rng = np.random.default_rng(7)
        block = rng.random((32, 32))
        assert np.sum(dct_2d(block) ** 2) == pytest.approx(np.sum(block ** 2))


class TestPerceptualHash:
    """Test the low-frequency DCT fingerprint."""

    def test_last_bit_always_unset(self):
        """Only 63 coefficients are compared, the 64th bit stays 0."""
        rng = np.random.default_rng(3)
        for _ in range(5):
            lum = rng.random((96, 96))
            assert hash_to_int(perceptual_hash(lum)) & 1 == 0

    def test_deterministic(self):
        """Same buffer, same hash."""
        lum = _half_bright()
        assert perceptual_hash(lum) == perceptual_hash(lum.copy())

    def test_contrast_change_stays_close(self):
        """A linear contrast change keeps the AC coefficient order."""
        rng = np.random.default_rng(11)
        lum = np.kron(rng.random((8, 8)), np.ones((12, 12)))
        adjusted = lum * 0.8 + 0.1
        assert hamming_distance(perceptual_hash(lum), perceptual_hash(adjusted)) <= 2
