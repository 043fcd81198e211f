"""Tests for the symmetric Dirichlet concentration estimate."""

import pytest
import numpy as np

from scopic._utils.dirichlet import estimate_dirichlet_concentration


@pytest.mark.parametrize('alpha', [0.8, 2.0])
def test_recovers_known_concentration(alpha):
    """Sharp posteriors around Dirichlet draws give back the generating alpha."""
    rng = np.random.default_rng(0)
    theta = rng.dirichlet(np.full(4, alpha), size=3000)
    gamma = theta * 1e9

    estimate = estimate_dirichlet_concentration(gamma)

    assert estimate == pytest.approx(alpha, rel=0.15)


def test_flatter_posteriors_give_larger_concentration():
    rng = np.random.default_rng(1)
    peaked = rng.dirichlet(np.full(3, 0.8), size=1000) * 1e9
    flat = rng.dirichlet(np.full(3, 5.0), size=1000) * 1e9

    assert estimate_dirichlet_concentration(flat) > estimate_dirichlet_concentration(peaked)


def test_rejects_invalid_posteriors():
    with pytest.raises(FloatingPointError, match="positive and finite"):
        estimate_dirichlet_concentration(np.array([[1.0, 0.0], [1.0, 2.0]]))
    with pytest.raises(FloatingPointError, match="positive and finite"):
        estimate_dirichlet_concentration(np.array([[1.0, np.nan]]))
    with pytest.raises(ValueError, match="2D"):
        estimate_dirichlet_concentration(np.ones(3))
