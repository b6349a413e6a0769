"""
Verification helpers for the flux Jacobians.

The implicit kernels return analytic Jacobians with respect to the velocity
at each side of the face. These helpers compare them against central finite
differences of the residual.
"""

from typing import Callable, Optional

import numpy as np
import numpy.typing as npt

from pbflux.constants import VEL_IDX
from .fluxes import FluxKernel, DissipationInputs, evaluate

NDArrayFloat = npt.NDArray[np.floating]


def finite_difference_jacobian(fn: Callable[[NDArrayFloat], NDArrayFloat],
                               x: NDArrayFloat, eps: float = 1e-6) -> NDArrayFloat:
    """
    Central-difference Jacobian dfn/dx.

    Parameters
    ----------
    fn : callable
        Maps an array of shape (n,) to an array of shape (m,).
    x : ndarray, shape (n,)
        Linearization point.
    eps : float
        Step size.

    Returns
    -------
    J : ndarray, shape (m, n)
    """
    x = np.asarray(x, dtype=np.float64)
    columns = []
    for l in range(x.shape[0]):
        dx = np.zeros_like(x)
        dx[l] = eps
        columns.append((np.asarray(fn(x + dx)) - np.asarray(fn(x - dx))) / (2.0 * eps))
    return np.stack(columns, axis=-1)


def jacobian_consistency_error(kernel: FluxKernel, V: NDArrayFloat, normal: NDArrayFloat,
                               diss: Optional[DissipationInputs] = None,
                               eps: float = 1e-6) -> float:
    """
    Max deviation between J_i + J_j and a finite-difference perturbation of
    the velocity shared by both sides of the face.

    Both sides carry the same state V, so the central dissipation difference
    stays zero and only the inviscid linearization is probed. With equal
    neighbor counts the diagonal dissipation terms cancel in J_i + J_j.

    Parameters
    ----------
    kernel : FluxKernel
        An implicit kernel (``kernel.implicit`` must be True).
    V : ndarray, shape (nDim+2,)
        Shared primitive state.
    normal : ndarray, shape (nDim,)
        Face normal.
    diss : DissipationInputs, optional
        Dissipation inputs used on both sides (central schemes).

    Returns
    -------
    float
        max |J_i + J_j - dF/du|
    """
    if not kernel.implicit:
        raise ValueError("Jacobian consistency requires an implicit kernel")

    V = np.asarray(V, dtype=np.float64)
    n_dim = kernel.n_dim
    velocity = V[VEL_IDX:VEL_IDX + n_dim]

    def residual_of(u):
        V_pert = V.copy()
        V_pert[VEL_IDX:VEL_IDX + n_dim] = u
        return evaluate(kernel, V_pert, V_pert, normal, diss, diss).residual.copy()

    J_fd = finite_difference_jacobian(residual_of, velocity, eps)
    result = evaluate(kernel, V, V, normal, diss, diss)
    return float(np.max(np.abs(result.jacobian_i + result.jacobian_j - J_fd)))
