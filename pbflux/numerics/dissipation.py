"""
Scalar artificial dissipation shared by the central schemes.

The dissipation added to the central flux at a face (i, j) has the form

    D = (ε(2) ΔU - ε(4) ΔL) · Ψ · λ̄          (JST)
    D = ε(0) ΔU · Ψ · λ̄                      (Lax)

where ΔU = U_i - U_j, ΔL is the difference of undivided Laplacians,
λ̄ is the mean spectral radius and Ψ the stretching factor that limits
the dissipation on stretched meshes.

For the pressure-based formulation the local spectral radius is the
convective one only:

    λ = |2 (u·n)|

References:
    [1] Jameson, A., Schmidt, W., & Turkel, E. (1981). AIAA Paper 81-1259.
    [2] Swanson, R. C., & Turkel, E. (1992). "On central-difference and
        upwind schemes." JCP 101.
"""

from typing import Tuple

import numpy as np
import numpy.typing as npt

from pbflux.constants import PARAM_P

NDArrayFloat = npt.NDArray[np.floating]


def spectral_radii(velocity_i: NDArrayFloat, velocity_j: NDArrayFloat,
                   normal: NDArrayFloat) -> Tuple[float, float, float]:
    """
    Local and mean convective spectral radii at a face.

    Returns
    -------
    lambda_i, lambda_j : float
        |2 (u_i·n)| and |2 (u_j·n)| (scaled by face area).
    mean_lambda : float
        0.5 (lambda_i + lambda_j)
    """
    lambda_i = abs(2.0 * float(np.dot(velocity_i, normal)))
    lambda_j = abs(2.0 * float(np.dot(velocity_j, normal)))
    return lambda_i, lambda_j, 0.5 * (lambda_i + lambda_j)


def stretching_factor(lambda_i: float, lambda_j: float, mean_lambda: float,
                      param_p: float = PARAM_P) -> float:
    """
    Stretching factor Ψ = 4 φ_i φ_j / (φ_i + φ_j), φ = (λ / 4λ̄)^p.

    A face with no convective speed on either side (λ̄ = 0) has Ψ = 1.
    The dissipation there vanishes anyway since it is scaled by λ̄.
    """
    if mean_lambda == 0.0:
        return 1.0

    phi_i = (lambda_i / (4.0 * mean_lambda)) ** param_p
    phi_j = (lambda_j / (4.0 * mean_lambda)) ** param_p
    return 4.0 * phi_i * phi_j / (phi_i + phi_j)


def neighbor_scaling(neighbors_i: int, neighbors_j: int) -> float:
    """
    Neighbor-count scaling sc = 3 (n_i + n_j) / (n_i n_j).

    Equals 1.5 on a structured 2D grid (4 neighbors per node).
    Both counts must be at least 1.
    """
    if neighbors_i < 1 or neighbors_j < 1:
        raise ValueError(
            f"Neighbor counts must be at least 1, got {neighbors_i} and {neighbors_j}")
    n_i = float(neighbors_i)
    n_j = float(neighbors_j)
    return 3.0 * (n_i + n_j) / (n_i * n_j)


def jst_coefficients(kappa_2: float, kappa_4: float, sensor_i: float, sensor_j: float,
                     neighbors_i: int, neighbors_j: int) -> Tuple[float, float]:
    """
    JST blending coefficients.

        ε(2) = κ2 · ½(ν_i + ν_j) · sc2
        ε(4) = max(0, κ4 - ε(2)) · sc2² / 4

    The 4th-difference term switches off where the sensor drives ε(2) up.
    """
    sc2 = neighbor_scaling(neighbors_i, neighbors_j)
    sc4 = sc2 * sc2 / 4.0

    eps2 = kappa_2 * 0.5 * (sensor_i + sensor_j) * sc2
    eps4 = max(0.0, kappa_4 - eps2) * sc4
    return eps2, eps4


def lax_coefficient(kappa_0: float, neighbors_i: int, neighbors_j: int, n_dim: int) -> float:
    """Lax 1st-order coefficient ε(0) = κ0 · sc0 · nDim / 3."""
    sc0 = neighbor_scaling(neighbors_i, neighbors_j)
    return kappa_0 * sc0 * float(n_dim) / 3.0
