"""
Edge-based dissipation sensors for the central schemes.

The JST and Lax kernels read per-node quantities that are gathered over
the edges of the mesh before the flux loop:

    neighbors   number of edges incident to each node
    L_i         undivided Laplacian, Σ_{j ∈ N(i)} (U_j - U_i)
    ν_i         pressure sensor, |Σ (p_j - p_i)| / (Σ (|p_i| + |p_j|) + eps)

U is the conservative (momentum) vector ρu. Edges are given as an
(n_edges, 2) integer array of node pairs.
"""

from typing import List

import numpy as np
import numpy.typing as npt
from numba import njit
from loguru import logger

from pbflux.constants import P_IDX, VEL_IDX, SENSOR_EPS, density_index, n_primitive
from .fluxes import DissipationInputs

NDArrayFloat = npt.NDArray[np.floating]
NDArrayInt = npt.NDArray[np.integer]


# =============================================================================
# Numba Kernels
# =============================================================================

@njit(cache=True)
def _undivided_laplacian_numba(edges: np.ndarray, U: np.ndarray, lapl: np.ndarray) -> None:
    """Accumulate Σ (U_j - U_i) over edges into lapl (zeroed by caller)."""
    n_edges = edges.shape[0]
    n_var = U.shape[1]

    for e in range(n_edges):
        i = edges[e, 0]
        j = edges[e, 1]
        for k in range(n_var):
            diff = U[i, k] - U[j, k]
            lapl[i, k] -= diff
            lapl[j, k] += diff


@njit(cache=True)
def _pressure_sensor_numba(edges: np.ndarray, p: np.ndarray, eps: float,
                           sensor: np.ndarray) -> None:
    """Normalized undivided Laplacian of the pressure."""
    n_nodes = p.shape[0]
    und_lapl = np.zeros(n_nodes)
    p_sum = np.zeros(n_nodes)

    for e in range(edges.shape[0]):
        i = edges[e, 0]
        j = edges[e, 1]
        diff = p[j] - p[i]
        und_lapl[i] += diff
        und_lapl[j] -= diff
        magnitude = abs(p[i]) + abs(p[j])
        p_sum[i] += magnitude
        p_sum[j] += magnitude

    for i in range(n_nodes):
        sensor[i] = abs(und_lapl[i]) / (p_sum[i] + eps)


# =============================================================================
# Public API
# =============================================================================

def _check_edges(edges, n_nodes: int) -> NDArrayInt:
    edges = np.ascontiguousarray(edges, dtype=np.int64)
    if edges.ndim != 2 or edges.shape[1] != 2:
        raise ValueError(f"edges must have shape (n_edges, 2), got {edges.shape}")
    if edges.size and (edges.min() < 0 or edges.max() >= n_nodes):
        raise ValueError(f"edge node indices must lie in [0, {n_nodes})")
    return edges


def compute_neighbor_counts(edges, n_nodes: int) -> NDArrayInt:
    """Number of edges incident to each node."""
    edges = _check_edges(edges, n_nodes)
    return np.bincount(edges.ravel(), minlength=n_nodes)


def conservative_variables(V: NDArrayFloat, n_dim: int) -> NDArrayFloat:
    """
    Momentum ρu per node.

    Parameters
    ----------
    V : ndarray, shape (n_nodes, nDim+2)
        Primitive variables [p, u..., ρ] per node.

    Returns
    -------
    U : ndarray, shape (n_nodes, nDim)
    """
    V = np.asarray(V, dtype=np.float64)
    if V.ndim != 2 or V.shape[1] != n_primitive(n_dim):
        raise ValueError(f"V must have shape (n_nodes, {n_primitive(n_dim)}), got {V.shape}")
    return V[:, VEL_IDX:VEL_IDX + n_dim] * V[:, density_index(n_dim), np.newaxis]


def compute_undivided_laplacian(edges, U: NDArrayFloat) -> NDArrayFloat:
    """
    Undivided Laplacian Σ_{j ∈ N(i)} (U_j - U_i) of a nodal field.

    Parameters
    ----------
    edges : array_like, shape (n_edges, 2)
    U : ndarray, shape (n_nodes, nVar)

    Returns
    -------
    lapl : ndarray, shape (n_nodes, nVar)
    """
    U = np.ascontiguousarray(U, dtype=np.float64)
    edges = _check_edges(edges, U.shape[0])
    lapl = np.zeros_like(U)
    _undivided_laplacian_numba(edges, U, lapl)
    return lapl


def compute_pressure_sensor(edges, pressure: NDArrayFloat, eps: float = SENSOR_EPS) -> NDArrayFloat:
    """
    Pressure switch used by the JST 2nd-difference term.

    ~0 where the pressure is smooth, up to 1 at pressure jumps.
    """
    pressure = np.ascontiguousarray(pressure, dtype=np.float64)
    edges = _check_edges(edges, pressure.shape[0])
    sensor = np.empty_like(pressure)
    _pressure_sensor_numba(edges, pressure, eps, sensor)
    return sensor


def compute_dissipation_inputs(edges, V: NDArrayFloat, n_dim: int,
                               eps: float = SENSOR_EPS) -> List[DissipationInputs]:
    """
    Gather the per-node dissipation inputs of a mesh.

    Parameters
    ----------
    edges : array_like, shape (n_edges, 2)
        Node pairs of the mesh edges.
    V : ndarray, shape (n_nodes, nDim+2)
        Primitive variables per node.
    n_dim : int
        Spatial dimension.

    Returns
    -------
    list of DissipationInputs, one per node.
    """
    U = conservative_variables(V, n_dim)
    n_nodes = U.shape[0]

    neighbors = compute_neighbor_counts(edges, n_nodes)
    lapl = compute_undivided_laplacian(edges, U)
    sensor = compute_pressure_sensor(edges, np.asarray(V, dtype=np.float64)[:, P_IDX], eps)

    isolated = int(np.sum(neighbors == 0))
    if isolated:
        logger.warning(f"{isolated} node(s) have no incident edge; "
                       "central dissipation is undefined there")

    logger.debug(f"Dissipation inputs: {n_nodes} nodes, {len(np.asarray(edges))} edges")

    return [
        DissipationInputs(float(sensor[i]), lapl[i], int(neighbors[i]))
        for i in range(n_nodes)
    ]
