"""
Global constants for the face flux kernels.

This module defines the primitive-variable layout and the fixed parameters
of the artificial dissipation shared by the central schemes.
"""

# Primitive variable layout: V = [p, u_0, ..., u_{dim-1}, rho]
P_IDX = 0     # Pressure
VEL_IDX = 1   # First velocity component

# Supported spatial dimensions
VALID_DIMS = (2, 3)

# Exponent of the spectral radius ratio in the stretching factor
PARAM_P = 0.3

# Regularization of the pressure sensor denominator
SENSOR_EPS = 1e-10


def density_index(n_dim: int) -> int:
    """Index of the density in a primitive vector of dimension n_dim."""
    return n_dim + 1


def n_primitive(n_dim: int) -> int:
    """
    Length of the primitive vector.

    Parameters
    ----------
    n_dim : int
        Spatial dimension (2 or 3).

    Returns
    -------
    int
        n_dim + 2 (pressure, velocity components, density)
    """
    return n_dim + 2
