"""
Face flux kernels for the pressure-based incompressible formulation.

Each kernel evaluates, for one face between nodes i and j, the momentum
flux through the face and (for implicit time integration) its Jacobians
with respect to the velocity at i and j:

    UpwindFlux          mass-flux upwinding, donor-side Jacobian
    CentralJSTFlux      central flux + blended 2nd/4th difference dissipation
    CentralLaxFlux      central flux + 1st order scalar dissipation
    PressureSourceFlux  mean pressure times normal, explicit only

Primitive vectors are laid out as V = [p, u_0, ..., u_{nDim-1}, ρ] and the
face normal is scaled by the face area, oriented from i to j.

A kernel instance owns scratch buffers that are overwritten on every call;
give each worker thread its own instance.
"""

from enum import Enum
from typing import NamedTuple, Optional, Union

import numpy as np
import numpy.typing as npt
from loguru import logger

from pbflux.constants import P_IDX, VEL_IDX, VALID_DIMS, density_index, n_primitive
from pbflux.config.schema import SchemeConfig, FluxConfigurationError, FluxSimulationConfig
from .projected import projected_flux, projected_flux_jacobian
from .dissipation import (
    spectral_radii,
    stretching_factor,
    jst_coefficients,
    lax_coefficient,
)

NDArrayFloat = npt.NDArray[np.floating]


class SchemeKind(Enum):
    """Closed set of face flux schemes."""
    UPWIND = "upwind"
    JST = "jst"
    LAX = "lax"
    PRESSURE_SOURCE = "pressure_source"


class PrimitiveState(NamedTuple):
    """Primitive state at one side of a face."""
    pressure: float
    velocity: NDArrayFloat   # shape (nDim,)
    density: float


class DissipationInputs(NamedTuple):
    """Per-node inputs of the artificial dissipation.

    ``undivided_laplacian`` is only read by the JST scheme.
    """
    sensor: float
    undivided_laplacian: Optional[NDArrayFloat]
    neighbors: int


class FluxResult(NamedTuple):
    """Residual of one face and, in implicit mode, its Jacobians."""
    residual: NDArrayFloat                      # shape (nVar,)
    jacobian_i: Optional[NDArrayFloat] = None   # shape (nVar, nVar)
    jacobian_j: Optional[NDArrayFloat] = None   # shape (nVar, nVar)


def unpack_primitive(V, n_dim: int) -> PrimitiveState:
    """Split a primitive vector [p, u..., ρ] into a PrimitiveState."""
    V = np.asarray(V, dtype=np.float64)
    if V.shape != (n_primitive(n_dim),):
        raise ValueError(
            f"Primitive vector must have shape ({n_primitive(n_dim)},), got {V.shape}")
    return PrimitiveState(
        pressure=float(V[P_IDX]),
        velocity=V[VEL_IDX:VEL_IDX + n_dim],
        density=float(V[density_index(n_dim)]),
    )


class FluxKernel:
    """Common construction and validation for all face kernels.

    Parameters
    ----------
    n_dim : int
        Spatial dimension (2 or 3).
    n_var : int
        Number of flux components. Must equal ``n_dim`` (momentum only).
    config : SchemeConfig, optional
        Scheme constants. Defaults to ``SchemeConfig()``.
    """

    kind: SchemeKind

    def __init__(self, n_dim: int, n_var: int, config: Optional[SchemeConfig] = None):
        if n_dim not in VALID_DIMS:
            raise FluxConfigurationError(f"n_dim must be 2 or 3, got {n_dim}")
        if n_var != n_dim:
            raise FluxConfigurationError(
                f"n_var must equal n_dim for the momentum equations, "
                f"got n_var={n_var}, n_dim={n_dim}")

        self.n_dim = n_dim
        self.n_var = n_var
        self.config = config if config is not None else SchemeConfig()
        self.implicit = self.config.implicit

        # Scratch, overwritten on every call
        self._mean_velocity = np.empty(n_dim)

        logger.debug(f"{type(self).__name__}: n_dim={n_dim}, implicit={self.implicit}")

    def _normal(self, normal) -> NDArrayFloat:
        normal = np.asarray(normal, dtype=np.float64)
        if normal.shape != (self.n_dim,):
            raise ValueError(f"Face normal must have shape ({self.n_dim},), got {normal.shape}")
        return normal

    def _states(self, V_i, V_j):
        return unpack_primitive(V_i, self.n_dim), unpack_primitive(V_j, self.n_dim)

    def _mean(self, s_i: PrimitiveState, s_j: PrimitiveState):
        """Arithmetic mean density, velocity (scratch buffer) and pressure."""
        np.add(s_i.velocity, s_j.velocity, out=self._mean_velocity)
        self._mean_velocity *= 0.5
        mean_density = 0.5 * (s_i.density + s_j.density)
        mean_pressure = 0.5 * (s_i.pressure + s_j.pressure)
        return mean_density, self._mean_velocity, mean_pressure


class UpwindFlux(FluxKernel):
    """
    First-order upwind flux driven by the sign of the mean mass flux.

        ṁ = ρ̄ (ū·n)
        F = ṁ u_i  if ṁ > 0,  else  ṁ u_j

    ṁ = 0 selects side j. The Jacobian is the projected flux Jacobian of the
    donor side (scale 1) in the donor slot; the other slot is zero.
    """

    kind = SchemeKind.UPWIND

    def compute_residual(self, V_i, V_j, normal,
                         diss_i: Optional[DissipationInputs] = None,
                         diss_j: Optional[DissipationInputs] = None) -> FluxResult:
        """Evaluate the upwind flux. Dissipation inputs are accepted and ignored."""
        normal = self._normal(normal)
        s_i, s_j = self._states(V_i, V_j)
        mean_density, mean_velocity, _ = self._mean(s_i, s_j)

        mass_flux = mean_density * float(np.dot(mean_velocity, normal))
        donor = s_i if mass_flux > 0.0 else s_j

        residual = mass_flux * donor.velocity

        if not self.implicit:
            return FluxResult(residual)

        jac_i = np.zeros((self.n_var, self.n_var))
        jac_j = np.zeros((self.n_var, self.n_var))
        projected_flux_jacobian(donor.density, donor.velocity, normal, 1.0,
                                out=jac_i if donor is s_i else jac_j)
        return FluxResult(residual, jac_i, jac_j)


class _CentralFlux(FluxKernel):
    """Central inviscid part shared by the JST and Lax schemes."""

    def __init__(self, n_dim: int, n_var: int, config: Optional[SchemeConfig] = None):
        super().__init__(n_dim, n_var, config)
        self._U_i = np.empty(n_var)
        self._U_j = np.empty(n_var)
        self._diff_U = np.empty(n_var)

    def _central(self, s_i: PrimitiveState, s_j: PrimitiveState, normal: NDArrayFloat):
        mean_density, mean_velocity, mean_pressure = self._mean(s_i, s_j)

        residual = projected_flux(mean_density, mean_velocity, mean_pressure, normal)

        if not self.implicit:
            return residual, None, None

        jac_i = projected_flux_jacobian(mean_density, mean_velocity, normal, 0.5)
        return residual, jac_i, jac_i.copy()

    def _conservative_difference(self, s_i: PrimitiveState, s_j: PrimitiveState) -> NDArrayFloat:
        """ΔU = ρ_i u_i - ρ_j u_j (scratch buffer)."""
        np.multiply(s_i.velocity, s_i.density, out=self._U_i)
        np.multiply(s_j.velocity, s_j.density, out=self._U_j)
        np.subtract(self._U_i, self._U_j, out=self._diff_U)
        return self._diff_U

    def _damping(self, s_i: PrimitiveState, s_j: PrimitiveState, normal: NDArrayFloat) -> float:
        """Ψ · λ̄ from the local spectral radii."""
        lambda_i, lambda_j, mean_lambda = spectral_radii(s_i.velocity, s_j.velocity, normal)
        stretch = stretching_factor(lambda_i, lambda_j, mean_lambda, self.config.param_p)
        return stretch * mean_lambda

    @staticmethod
    def _require(diss_i, diss_j, scheme: str):
        if diss_i is None or diss_j is None:
            raise ValueError(f"{scheme} flux requires dissipation inputs on both sides")


class CentralJSTFlux(_CentralFlux):
    """
    Central flux with Jameson-Schmidt-Turkel artificial dissipation.

        F = F(ρ̄, ū, p̄)·n + (ε(2) (U_i - U_j) - ε(4) (L_i - L_j)) Ψ λ̄

    where L are undivided Laplacians of the conservative variables. The
    implicit dissipation Jacobian keeps only its diagonal:

        J_i += (ε(2) + ε(4) (n_i + 1)) Ψ λ̄ I
        J_j -= (ε(2) + ε(4) (n_j + 1)) Ψ λ̄ I
    """

    kind = SchemeKind.JST

    def __init__(self, n_dim: int, n_var: int, config: Optional[SchemeConfig] = None):
        super().__init__(n_dim, n_var, config)
        self._diff_lapl = np.empty(n_var)

    def compute_residual(self, V_i, V_j, normal,
                         diss_i: DissipationInputs, diss_j: DissipationInputs) -> FluxResult:
        self._require(diss_i, diss_j, "JST")
        if diss_i.undivided_laplacian is None or diss_j.undivided_laplacian is None:
            raise ValueError("JST flux requires undivided Laplacians on both sides")
        for lapl in (diss_i.undivided_laplacian, diss_j.undivided_laplacian):
            if np.shape(lapl) != (self.n_var,):
                raise ValueError(
                    f"Undivided Laplacian must have shape ({self.n_var},), got {np.shape(lapl)}")

        normal = self._normal(normal)
        s_i, s_j = self._states(V_i, V_j)

        residual, jac_i, jac_j = self._central(s_i, s_j, normal)

        diff_U = self._conservative_difference(s_i, s_j)
        np.subtract(diss_i.undivided_laplacian, diss_j.undivided_laplacian, out=self._diff_lapl)

        damping = self._damping(s_i, s_j, normal)
        eps2, eps4 = jst_coefficients(
            self.config.kappa_2, self.config.kappa_4,
            diss_i.sensor, diss_j.sensor,
            diss_i.neighbors, diss_j.neighbors,
        )

        residual += (eps2 * diff_U - eps4 * self._diff_lapl) * damping

        if not self.implicit:
            return FluxResult(residual)

        diag = np.diag_indices(self.n_var)
        jac_i[diag] += (eps2 + eps4 * float(diss_i.neighbors + 1)) * damping
        jac_j[diag] -= (eps2 + eps4 * float(diss_j.neighbors + 1)) * damping
        return FluxResult(residual, jac_i, jac_j)


class CentralLaxFlux(_CentralFlux):
    """
    Central flux with Lax-type 1st order scalar dissipation.

        F = F(ρ̄, ū, p̄)·n + ε(0) (U_i - U_j) Ψ λ̄,   ε(0) = κ0 sc0 nDim / 3
    """

    kind = SchemeKind.LAX

    def compute_residual(self, V_i, V_j, normal,
                         diss_i: DissipationInputs, diss_j: DissipationInputs) -> FluxResult:
        self._require(diss_i, diss_j, "Lax")

        normal = self._normal(normal)
        s_i, s_j = self._states(V_i, V_j)

        residual, jac_i, jac_j = self._central(s_i, s_j, normal)

        diff_U = self._conservative_difference(s_i, s_j)
        eps0 = lax_coefficient(self.config.kappa_0, diss_i.neighbors, diss_j.neighbors, self.n_dim)
        coeff = eps0 * self._damping(s_i, s_j, normal)

        residual += coeff * diff_U

        if not self.implicit:
            return FluxResult(residual)

        diag = np.diag_indices(self.n_var)
        jac_i[diag] += coeff
        jac_j[diag] -= coeff
        return FluxResult(residual, jac_i, jac_j)


class PressureSourceFlux(FluxKernel):
    """Mean pressure times face normal. Always explicit: no Jacobians."""

    kind = SchemeKind.PRESSURE_SOURCE

    def compute_residual(self, V_i, V_j, normal) -> FluxResult:
        normal = self._normal(normal)
        p_i = unpack_primitive(V_i, self.n_dim).pressure
        p_j = unpack_primitive(V_j, self.n_dim).pressure
        return FluxResult(0.5 * (p_i + p_j) * normal)


KERNEL_CLASSES = {
    SchemeKind.UPWIND: UpwindFlux,
    SchemeKind.JST: CentralJSTFlux,
    SchemeKind.LAX: CentralLaxFlux,
    SchemeKind.PRESSURE_SOURCE: PressureSourceFlux,
}

if set(KERNEL_CLASSES) != set(SchemeKind):
    raise ImportError(f"Kernel registry does not cover {set(SchemeKind) - set(KERNEL_CLASSES)}")


def _scheme_kind(kind: Union[str, SchemeKind]) -> SchemeKind:
    if isinstance(kind, SchemeKind):
        return kind
    try:
        return SchemeKind(kind)
    except ValueError:
        raise FluxConfigurationError(
            f"Unknown scheme kind: {kind!r}. "
            f"Expected one of {[k.value for k in SchemeKind]}") from None


def create_kernel(kind: Union[str, SchemeKind], n_dim: int, n_var: int,
                  config: Optional[SchemeConfig] = None) -> FluxKernel:
    """
    Construct a face kernel.

    Parameters
    ----------
    kind : str or SchemeKind
        "upwind", "jst", "lax" or "pressure_source".
    n_dim, n_var : int
        Spatial dimension and number of flux components (must be equal).
    config : SchemeConfig, optional
        Scheme constants.

    Raises
    ------
    FluxConfigurationError
        Unknown scheme, unsupported dimension or n_var != n_dim.
    """
    return KERNEL_CLASSES[_scheme_kind(kind)](n_dim, n_var, config)


def kernel_from_config(sim_config: FluxSimulationConfig) -> FluxKernel:
    """Construct the kernel selected by a full simulation configuration."""
    scheme_config = sim_config.to_scheme_config()
    n_dim = sim_config.scheme.n_dim
    logger.info(f"Flux scheme: {sim_config.scheme.kind} ({n_dim}D, "
                f"{sim_config.scheme.time_integration})")
    return create_kernel(sim_config.scheme.kind, n_dim, n_dim, scheme_config)


def evaluate(kernel: FluxKernel, V_i, V_j, normal,
             diss_i: Optional[DissipationInputs] = None,
             diss_j: Optional[DissipationInputs] = None) -> FluxResult:
    """
    Single entry point evaluating any kernel on one face.

    Dissipation inputs are forwarded to the kernels that read them.
    """
    kind = kernel.kind
    if kind is SchemeKind.PRESSURE_SOURCE:
        return kernel.compute_residual(V_i, V_j, normal)
    if kind is SchemeKind.UPWIND:
        return kernel.compute_residual(V_i, V_j, normal)
    if kind is SchemeKind.JST or kind is SchemeKind.LAX:
        return kernel.compute_residual(V_i, V_j, normal, diss_i, diss_j)
    raise FluxConfigurationError(f"Unhandled scheme kind: {kind}")
