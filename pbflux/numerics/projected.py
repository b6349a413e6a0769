"""
Projected inviscid flux of the pressure-based incompressible momentum equations.

For a state (ρ, u, p) and a face normal n scaled by the face area:

    F·n = ρ u (u·n) + p n

Only the momentum equations are carried (nVar = nDim); the pressure is
updated by the external pressure-correction step.
"""

from typing import Optional

import numpy as np
import numpy.typing as npt

NDArrayFloat = npt.NDArray[np.floating]


def projected_flux(density: float, velocity: NDArrayFloat, pressure: float,
                   normal: NDArrayFloat, out: Optional[NDArrayFloat] = None) -> NDArrayFloat:
    """
    Compute the momentum flux projected onto a face normal.

    Parameters
    ----------
    density : float
        Density ρ.
    velocity : ndarray, shape (nDim,)
        Velocity vector u.
    pressure : float
        Pressure p.
    normal : ndarray, shape (nDim,)
        Face normal (already scaled by face area).
    out : ndarray, shape (nDim,), optional
        Output buffer. Allocated when not given.

    Returns
    -------
    flux : ndarray, shape (nDim,)
        flux[k] = ρ u[k] (u·n) + p n[k]
    """
    if out is None:
        out = np.empty_like(normal, dtype=np.float64)

    U_n = np.dot(velocity, normal)
    np.multiply(velocity, density * U_n, out=out)
    out += pressure * normal
    return out


def projected_flux_jacobian(density: float, velocity: NDArrayFloat,
                            normal: NDArrayFloat, scale: float,
                            out: Optional[NDArrayFloat] = None) -> NDArrayFloat:
    """
    Jacobian of ``projected_flux`` with respect to the velocity.

        J[k, l] = scale · ρ (δ_kl (u·n) + u[k] n[l])

    The pressure term does not depend on the velocity and drops out.

    Parameters
    ----------
    density : float
        Density ρ.
    velocity : ndarray, shape (nDim,)
        Velocity vector u.
    normal : ndarray, shape (nDim,)
        Face normal (already scaled by face area).
    scale : float
        0.5 for central (averaged) contributions, 1.0 for one-sided upwind.
    out : ndarray, shape (nDim, nDim), optional
        Output buffer. Allocated when not given.

    Returns
    -------
    J : ndarray, shape (nDim, nDim)
    """
    n_dim = normal.shape[0]
    if out is None:
        out = np.empty((n_dim, n_dim), dtype=np.float64)

    rho_s = scale * density
    np.multiply.outer(velocity, normal, out=out)
    out *= rho_s
    out[np.diag_indices(n_dim)] += rho_s * np.dot(velocity, normal)
    return out
