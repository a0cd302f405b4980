"""Blending functions F1, F2, F3, F23 and blended coefficients."""

import numpy as np
import pytest

from sst_lowre.config import CoefficientSet
from sst_lowre.models import BlendingFunctions, blend

NU = 1e-5


@pytest.fixture
def blending():
    return BlendingFunctions(CoefficientSet())


@pytest.fixture
def blending_f3():
    coeffs, _ = CoefficientSet().read({"F3": "yes"})
    return BlendingFunctions(coeffs)


def _random_state(n=500, seed=1):
    rng = np.random.default_rng(seed)
    k = 10.0 ** rng.uniform(-8, 1, n)
    omega = 10.0 ** rng.uniform(-2, 6, n)
    y = 10.0 ** rng.uniform(-6, 1, n)
    CD = rng.normal(0.0, 10.0, n)
    return k, omega, y, CD


def test_blend_endpoints():
    assert blend(1.0, 3.0, 7.0) == 3.0
    assert blend(0.0, 3.0, 7.0) == 7.0
    assert blend(0.5, 3.0, 7.0) == 5.0


def test_factors_in_unit_interval(blending, blending_f3):
    k, omega, y, CD = _random_state()
    for b in (blending, blending_f3):
        for F in (
            b.F1(k, omega, y, NU, CD),
            b.F2(k, omega, y, NU),
            b.F3(omega, y, NU),
            b.F23(k, omega, y, NU),
        ):
            assert np.all(np.isfinite(F))
            assert np.all((F >= 0.0) & (F <= 1.0))


def test_F1_near_wall(blending):
    F1 = blending.F1(np.array([1.0]), np.array([100.0]), np.array([0.001]), NU, np.array([0.0]))
    assert F1[0] == pytest.approx(1.0, abs=1e-3)


def test_F1_far_field(blending):
    # Far from the wall with positive cross-diffusion: k-epsilon branch
    F1 = blending.F1(np.array([1.0]), np.array([1.0]), np.array([10.0]), NU, np.array([1.0]))
    assert F1[0] == pytest.approx(0.0, abs=1e-3)


def test_F1_limits_in_wall_distance(blending):
    k = np.full(3, 1.0)
    omega = np.full(3, 1.0)
    CD = np.zeros(3)
    F1_wall = blending.F1(k, omega, np.array([0.0, 1e-8, 1e-6]), NU, CD)
    np.testing.assert_allclose(F1_wall, 1.0)
    F1_far = blending.F1(k, omega, np.array([1e3, 1e4, 1e5]), NU, CD)
    np.testing.assert_allclose(F1_far, 0.0, atol=1e-6)


def test_F2_wall_and_far_field(blending):
    k = np.array([1.0, 1.0])
    omega = np.array([100.0, 1.0])
    F2 = blending.F2(k, omega, np.array([0.001, 1e3]), NU)
    assert F2[0] == pytest.approx(1.0)
    assert F2[1] < 1e-3


def test_F3_switch(blending, blending_f3):
    omega = np.array([1.0, 1e4])
    y = np.array([1e-4, 1.0])
    np.testing.assert_array_equal(blending.F3(omega, y, NU), 0.0)

    F3 = blending_f3.F3(omega, y, NU)
    assert F3[0] == pytest.approx(0.0, abs=1e-12)  # arg3 saturated at the wall
    assert F3[1] == pytest.approx(1.0)  # arg3 -> 0 away from it


def test_F23_takes_max_when_enabled(blending, blending_f3):
    k, omega, y, _ = _random_state(seed=2)
    F2 = blending.F2(k, omega, y, NU)
    np.testing.assert_array_equal(blending.F23(k, omega, y, NU), F2)
    F23 = blending_f3.F23(k, omega, y, NU)
    np.testing.assert_array_equal(F23, np.maximum(F2, blending_f3.F3(omega, y, NU)))


def test_blended_coefficients(blending):
    c = blending.coeffs
    assert blending.beta(1.0) == pytest.approx(c.beta1)
    assert blending.beta(0.0) == pytest.approx(c.beta2)
    assert blending.alpha_inf(1.0) == pytest.approx(c.gamma1)
    assert blending.sigma_k(1.0) == pytest.approx(c.sigmaK1)
    assert blending.sigma_k(0.0) == pytest.approx(c.sigmaK2)
    assert blending.sigma_omega(1.0) == pytest.approx(c.sigmaOmega1)
    assert blending.sigma_omega(0.0) == pytest.approx(c.sigmaOmega2)
    # Harmonic (alpha-form) blend, not arithmetic
    expected = 1.0 / (0.5 / c.sigmaK1 + 0.5 / c.sigmaK2)
    assert blending.sigma_k(0.5) == pytest.approx(expected)


def test_cross_diffusion(blending):
    CD = blending.cross_diffusion(np.array([2.0, -2.0]), np.array([4.0, 4.0]))
    expected = 2.0 / blending.coeffs.sigmaOmega2 * 0.5
    np.testing.assert_allclose(CD, [expected, -expected])
