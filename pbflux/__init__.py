"""
pbflux: face flux and Jacobian kernels for a pressure-based
incompressible finite-volume solver.
"""

__version__ = "0.1.0"
