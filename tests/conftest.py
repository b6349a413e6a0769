"""
Shared pytest fixtures for the test suite.

Faces are built from primitive vectors V = [p, u..., ρ] with area-scaled
normals, the same layout the kernels consume.
"""

import pytest
import numpy as np

from pbflux.config import SchemeConfig
from pbflux.numerics import DissipationInputs


def _primitive(p, velocity, rho):
    """Primitive vector [p, u..., ρ]."""
    return np.concatenate([[p], np.asarray(velocity, dtype=np.float64), [rho]])


# =============================================================================
# Configuration Fixtures
# =============================================================================

@pytest.fixture
def implicit_config():
    """Implicit scheme with non-trivial dissipation coefficients."""
    return SchemeConfig(implicit=True, kappa_2=0.5, kappa_4=0.02, kappa_0=0.15)


@pytest.fixture
def explicit_config():
    """Explicit scheme with the same coefficients."""
    return SchemeConfig(implicit=False, kappa_2=0.5, kappa_4=0.02, kappa_0=0.15)


# =============================================================================
# Face Fixtures
# =============================================================================

@pytest.fixture(params=[2, 3], ids=["2d", "3d"])
def n_dim(request):
    """Spatial dimension."""
    return request.param


@pytest.fixture
def make_face():
    """
    Factory for random, well-conditioned faces.

    Returns a dict with V_i, V_j, normal, diss_i, diss_j. The normal is
    roughly aligned with the mean velocity so both spectral radii are
    non-zero.
    """
    def _make(n_dim, seed=0):
        rng = np.random.default_rng(seed)
        u_i = np.eye(n_dim)[0] + 0.3 * rng.standard_normal(n_dim)
        u_j = 0.8 * np.eye(n_dim)[0] + 0.3 * rng.standard_normal(n_dim)
        normal = 0.2 * (np.eye(n_dim)[0] + 0.2 * rng.standard_normal(n_dim))
        return {
            'V_i': _primitive(1.0 + 0.1 * rng.standard_normal(), u_i, 1.0 + 0.1 * rng.random()),
            'V_j': _primitive(0.9 + 0.1 * rng.standard_normal(), u_j, 1.0 + 0.1 * rng.random()),
            'normal': normal,
            'diss_i': DissipationInputs(0.02 * rng.random(), 0.05 * rng.standard_normal(n_dim), 4),
            'diss_j': DissipationInputs(0.02 * rng.random(), 0.05 * rng.standard_normal(n_dim), 6),
        }
    return _make


@pytest.fixture
def face(make_face, n_dim):
    """One random face in 2D and 3D."""
    return make_face(n_dim)


@pytest.fixture
def uniform_face(n_dim):
    """Identical states on both sides with zero Laplacians."""
    velocity = np.linspace(1.0, 0.5, n_dim)
    V = _primitive(2.0, velocity, 1.3)
    normal = 0.5 * np.ones(n_dim)
    diss = DissipationInputs(0.1, np.zeros(n_dim), 5)
    return {'V_i': V.copy(), 'V_j': V.copy(), 'normal': normal, 'diss_i': diss, 'diss_j': diss}


@pytest.fixture
def make_primitive():
    """Builder for primitive vectors [p, u..., ρ]."""
    return _primitive
