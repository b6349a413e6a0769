"""
Face flux numerics for the pressure-based incompressible formulation.

This module provides:
- Projected inviscid flux and its Jacobian
- Upwind, central JST, central Lax and pressure-source face kernels
- Scalar artificial dissipation machinery and edge-based sensors
- Batched JAX evaluation of the kernels
"""

from .projected import (
    projected_flux,
    projected_flux_jacobian,
)

from .dissipation import (
    spectral_radii,
    stretching_factor,
    neighbor_scaling,
    jst_coefficients,
    lax_coefficient,
)

from .fluxes import (
    SchemeKind,
    PrimitiveState,
    DissipationInputs,
    FluxResult,
    FluxKernel,
    UpwindFlux,
    CentralJSTFlux,
    CentralLaxFlux,
    PressureSourceFlux,
    KERNEL_CLASSES,
    unpack_primitive,
    create_kernel,
    kernel_from_config,
    evaluate,
)

from .sensors import (
    compute_neighbor_counts,
    conservative_variables,
    compute_undivided_laplacian,
    compute_pressure_sensor,
    compute_dissipation_inputs,
)

from .diagnostics import (
    finite_difference_jacobian,
    jacobian_consistency_error,
)

__all__ = [
    # Projected flux
    'projected_flux',
    'projected_flux_jacobian',
    # Dissipation
    'spectral_radii',
    'stretching_factor',
    'neighbor_scaling',
    'jst_coefficients',
    'lax_coefficient',
    # Kernels
    'SchemeKind',
    'PrimitiveState',
    'DissipationInputs',
    'FluxResult',
    'FluxKernel',
    'UpwindFlux',
    'CentralJSTFlux',
    'CentralLaxFlux',
    'PressureSourceFlux',
    'KERNEL_CLASSES',
    'unpack_primitive',
    'create_kernel',
    'kernel_from_config',
    'evaluate',
    # Sensors
    'compute_neighbor_counts',
    'conservative_variables',
    'compute_undivided_laplacian',
    'compute_pressure_sensor',
    'compute_dissipation_inputs',
    # Diagnostics
    'finite_difference_jacobian',
    'jacobian_consistency_error',
]
