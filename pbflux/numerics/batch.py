"""
Batched JAX evaluation of the face kernels.

Vectorized counterparts of ``pbflux.numerics.fluxes`` over arrays of faces:

    V_i, V_j   (n_faces, nDim+2)   primitive states [p, u..., ρ]
    normals    (n_faces, nDim)     area-scaled face normals
    sensor_*   (n_faces,)          pressure sensors
    lapl_*     (n_faces, nVar)     undivided Laplacians
    nbr_*      (n_faces,)          neighbor counts

Results match the per-face kernels, including the ṁ = 0 tie-break (side j)
and Ψ = 1 on faces with λ̄ = 0. These functions hold no state and can be
called from any thread.
"""

from functools import partial
from typing import Optional, Union

import numpy as np
from loguru import logger

from pbflux.constants import P_IDX, VEL_IDX, PARAM_P, density_index
from pbflux.config.schema import SchemeConfig
from pbflux.physics.jax_config import jax, jnp
from .fluxes import SchemeKind, FluxResult, _scheme_kind


def _split(V, n_dim):
    return V[:, P_IDX], V[:, VEL_IDX:VEL_IDX + n_dim], V[:, density_index(n_dim)]


def _dot(a, b):
    return jnp.sum(a * b, axis=-1)


def projected_flux_jax(density, velocity, pressure, normal):
    """JAX: ρ u (u·n) + p n for each face."""
    U_n = _dot(velocity, normal)
    return velocity * (density * U_n)[:, None] + pressure[:, None] * normal


def projected_flux_jacobian_jax(density, velocity, normal, scale):
    """JAX: scale · ρ (δ_kl (u·n) + u_k n_l) for each face."""
    n_dim = normal.shape[-1]
    rho_s = scale * density
    J = rho_s[:, None, None] * velocity[:, :, None] * normal[:, None, :]
    return J + (rho_s * _dot(velocity, normal))[:, None, None] * jnp.eye(n_dim)


def _damping_jax(vel_i, vel_j, normal, param_p):
    """JAX: Ψ · λ̄ with Ψ = 1 where λ̄ = 0."""
    lambda_i = jnp.abs(2.0 * _dot(vel_i, normal))
    lambda_j = jnp.abs(2.0 * _dot(vel_j, normal))
    mean_lambda = 0.5 * (lambda_i + lambda_j)

    degenerate = mean_lambda == 0.0
    safe_mean = jnp.where(degenerate, 1.0, mean_lambda)
    phi_i = (lambda_i / (4.0 * safe_mean)) ** param_p
    phi_j = (lambda_j / (4.0 * safe_mean)) ** param_p
    safe_sum = jnp.where(degenerate, 1.0, phi_i + phi_j)
    stretch = jnp.where(degenerate, 1.0, 4.0 * phi_i * phi_j / safe_sum)
    return stretch * mean_lambda


def _central_jax(V_i, V_j, normals, implicit):
    n_dim = normals.shape[-1]
    p_i, vel_i, rho_i = _split(V_i, n_dim)
    p_j, vel_j, rho_j = _split(V_j, n_dim)

    mean_rho = 0.5 * (rho_i + rho_j)
    mean_vel = 0.5 * (vel_i + vel_j)
    mean_p = 0.5 * (p_i + p_j)

    residual = projected_flux_jax(mean_rho, mean_vel, mean_p, normals)
    diff_U = vel_i * rho_i[:, None] - vel_j * rho_j[:, None]

    jac = projected_flux_jacobian_jax(mean_rho, mean_vel, normals, 0.5) if implicit else None
    return residual, jac, diff_U, vel_i, vel_j


@partial(jax.jit, static_argnames=('implicit',))
def upwind_flux_batch(V_i, V_j, normals, implicit=False):
    """JAX: mass-flux upwind residuals and donor Jacobians."""
    n_dim = normals.shape[-1]
    _, vel_i, rho_i = _split(V_i, n_dim)
    _, vel_j, rho_j = _split(V_j, n_dim)

    mean_rho = 0.5 * (rho_i + rho_j)
    mean_vel = 0.5 * (vel_i + vel_j)
    mass_flux = mean_rho * _dot(mean_vel, normals)

    from_i = mass_flux > 0.0
    vel_d = jnp.where(from_i[:, None], vel_i, vel_j)
    rho_d = jnp.where(from_i, rho_i, rho_j)

    residual = mass_flux[:, None] * vel_d
    if not implicit:
        return residual, None, None

    J_d = projected_flux_jacobian_jax(rho_d, vel_d, normals, 1.0)
    jac_i = jnp.where(from_i[:, None, None], J_d, 0.0)
    jac_j = jnp.where(from_i[:, None, None], 0.0, J_d)
    return residual, jac_i, jac_j


@partial(jax.jit, static_argnames=('implicit',))
def jst_flux_batch(V_i, V_j, normals, sensor_i, sensor_j, lapl_i, lapl_j,
                   nbr_i, nbr_j, kappa_2, kappa_4, param_p=PARAM_P, implicit=False):
    """JAX: central flux with JST dissipation."""
    residual, jac, diff_U, vel_i, vel_j = _central_jax(V_i, V_j, normals, implicit)

    n_i = nbr_i.astype(jnp.float64)
    n_j = nbr_j.astype(jnp.float64)
    sc2 = 3.0 * (n_i + n_j) / (n_i * n_j)
    sc4 = sc2 * sc2 / 4.0
    eps2 = kappa_2 * 0.5 * (sensor_i + sensor_j) * sc2
    eps4 = jnp.maximum(0.0, kappa_4 - eps2) * sc4

    damping = _damping_jax(vel_i, vel_j, normals, param_p)
    residual = residual + (eps2[:, None] * diff_U - eps4[:, None] * (lapl_i - lapl_j)) * damping[:, None]

    if not implicit:
        return residual, None, None

    eye = jnp.eye(normals.shape[-1])
    cte_i = (eps2 + eps4 * (n_i + 1.0)) * damping
    cte_j = (eps2 + eps4 * (n_j + 1.0)) * damping
    return residual, jac + cte_i[:, None, None] * eye, jac - cte_j[:, None, None] * eye


@partial(jax.jit, static_argnames=('implicit',))
def lax_flux_batch(V_i, V_j, normals, nbr_i, nbr_j, kappa_0, param_p=PARAM_P, implicit=False):
    """JAX: central flux with Lax dissipation."""
    n_dim = normals.shape[-1]
    residual, jac, diff_U, vel_i, vel_j = _central_jax(V_i, V_j, normals, implicit)

    n_i = nbr_i.astype(jnp.float64)
    n_j = nbr_j.astype(jnp.float64)
    sc0 = 3.0 * (n_i + n_j) / (n_i * n_j)
    eps0 = kappa_0 * sc0 * float(n_dim) / 3.0

    coeff = eps0 * _damping_jax(vel_i, vel_j, normals, param_p)
    residual = residual + coeff[:, None] * diff_U

    if not implicit:
        return residual, None, None

    eye = jnp.eye(n_dim)
    return residual, jac + coeff[:, None, None] * eye, jac - coeff[:, None, None] * eye


@jax.jit
def pressure_source_batch(V_i, V_j, normals):
    """JAX: mean pressure times normal."""
    return 0.5 * (V_i[:, P_IDX] + V_j[:, P_IDX])[:, None] * normals


def _check_neighbors(nbr_i, nbr_j):
    if np.min(nbr_i) < 1 or np.min(nbr_j) < 1:
        raise ValueError("Neighbor counts must be at least 1 on every face")


def evaluate_batch(kind: Union[str, SchemeKind], config: Optional[SchemeConfig],
                   V_i, V_j, normals,
                   sensor_i=None, sensor_j=None,
                   lapl_i=None, lapl_j=None,
                   nbr_i=None, nbr_j=None) -> FluxResult:
    """
    Evaluate one scheme over a batch of faces.

    Returns a FluxResult of NumPy arrays with a leading face axis.
    Jacobians are None unless ``config.implicit`` (never for the pressure source).
    """
    kind = _scheme_kind(kind)
    config = config if config is not None else SchemeConfig()

    V_i = jnp.asarray(V_i, dtype=jnp.float64)
    V_j = jnp.asarray(V_j, dtype=jnp.float64)
    normals = jnp.asarray(normals, dtype=jnp.float64)
    if V_i.shape != V_j.shape or V_i.shape[0] != normals.shape[0] \
            or V_i.shape[1] != normals.shape[1] + 2:
        raise ValueError(
            f"Inconsistent batch shapes: V_i {V_i.shape}, V_j {V_j.shape}, normals {normals.shape}")

    logger.debug(f"Batched {kind.value} flux over {normals.shape[0]} faces")

    if kind is SchemeKind.PRESSURE_SOURCE:
        return FluxResult(np.asarray(pressure_source_batch(V_i, V_j, normals)))

    if kind is SchemeKind.UPWIND:
        out = upwind_flux_batch(V_i, V_j, normals, implicit=config.implicit)
    elif kind is SchemeKind.JST:
        if any(x is None for x in (sensor_i, sensor_j, lapl_i, lapl_j, nbr_i, nbr_j)):
            raise ValueError("JST flux requires sensors, undivided Laplacians "
                             "and neighbor counts on both sides")
        _check_neighbors(nbr_i, nbr_j)
        out = jst_flux_batch(
            V_i, V_j, normals,
            jnp.asarray(sensor_i, dtype=jnp.float64), jnp.asarray(sensor_j, dtype=jnp.float64),
            jnp.asarray(lapl_i, dtype=jnp.float64), jnp.asarray(lapl_j, dtype=jnp.float64),
            jnp.asarray(nbr_i), jnp.asarray(nbr_j),
            config.kappa_2, config.kappa_4, config.param_p, implicit=config.implicit,
        )
    else:
        if nbr_i is None or nbr_j is None:
            raise ValueError("Lax flux requires neighbor counts on both sides")
        _check_neighbors(nbr_i, nbr_j)
        out = lax_flux_batch(
            V_i, V_j, normals, jnp.asarray(nbr_i), jnp.asarray(nbr_j),
            config.kappa_0, config.param_p, implicit=config.implicit,
        )

    residual, jac_i, jac_j = out
    if jac_i is None:
        return FluxResult(np.asarray(residual))
    return FluxResult(np.asarray(residual), np.asarray(jac_i), np.asarray(jac_j))
