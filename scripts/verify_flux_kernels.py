#!/usr/bin/env python3
"""
Flux Kernel Verification Script.

Evaluates the configured face kernel on a sample face and, for implicit
schemes, checks the analytic Jacobians against finite differences.
Optionally compares the per-face kernel with the batched JAX path.
"""

import sys
import argparse
from pathlib import Path

import numpy as np

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger
from pbflux.utils.logging import setup_logging
from pbflux.config import FluxSimulationConfig, load_yaml, apply_cli_overrides
from pbflux.numerics import (
    DissipationInputs,
    SchemeKind,
    kernel_from_config,
    evaluate,
    jacobian_consistency_error,
)


def parse_args():
    parser = argparse.ArgumentParser(description="Verify a face flux kernel on a sample face.")
    parser.add_argument("--config", default=None,
                        help="YAML configuration (default: built-in defaults)")
    parser.add_argument("--scheme", choices=[k.value for k in SchemeKind], default=None,
                        help="Override the scheme kind")
    parser.add_argument("--n-dim", dest="n_dim", type=int, choices=[2, 3], default=None,
                        help="Override the spatial dimension")
    parser.add_argument("--time-integration", dest="time_integration", default=None,
                        help="euler_implicit | euler_explicit | runge_kutta_explicit")
    parser.add_argument("--kappa-2", dest="kappa_2", type=float, default=None)
    parser.add_argument("--kappa-4", dest="kappa_4", type=float, default=None)
    parser.add_argument("--kappa-0", dest="kappa_0", type=float, default=None)
    parser.add_argument("--log-level", dest="log_level", default=None)
    parser.add_argument("--eps", type=float, default=1e-6,
                        help="Finite difference step (default: 1e-6)")
    parser.add_argument("--tol", type=float, default=1e-6,
                        help="Allowed Jacobian deviation (default: 1e-6)")
    parser.add_argument("--batch", action="store_true",
                        help="Also compare against the batched JAX kernels")
    return parser.parse_args()


def sample_face(n_dim: int, seed: int = 0):
    """Random but well-conditioned face: states, normal and dissipation inputs."""
    rng = np.random.default_rng(seed)
    V_i = np.concatenate([[1.0], 1.0 + 0.2 * rng.standard_normal(n_dim), [1.2]])
    V_j = np.concatenate([[0.8], 0.9 + 0.2 * rng.standard_normal(n_dim), [1.1]])
    normal = 0.1 * (np.eye(n_dim)[0] + 0.3 * rng.standard_normal(n_dim))
    diss_i = DissipationInputs(0.05, 0.01 * rng.standard_normal(n_dim), 4)
    diss_j = DissipationInputs(0.10, 0.01 * rng.standard_normal(n_dim), 5)
    return V_i, V_j, normal, diss_i, diss_j


def main():
    args = parse_args()

    config = load_yaml(args.config) if args.config else FluxSimulationConfig()
    config = apply_cli_overrides(config, args)
    setup_logging(config.logging.level, config.logging.show_time)

    kernel = kernel_from_config(config)
    n_dim = config.scheme.n_dim
    V_i, V_j, normal, diss_i, diss_j = sample_face(n_dim)

    result = evaluate(kernel, V_i, V_j, normal, diss_i, diss_j)
    logger.info(f"Residual: {np.array2string(result.residual, precision=6)}")

    failed = False
    if result.jacobian_i is not None:
        logger.info(f"Jacobian i:\n{np.array2string(result.jacobian_i, precision=6)}")
        logger.info(f"Jacobian j:\n{np.array2string(result.jacobian_j, precision=6)}")

        err = jacobian_consistency_error(kernel, V_i, normal, diss_i, eps=args.eps)
        if err > args.tol:
            logger.error(f"Jacobian consistency: max error {err:.3e} > {args.tol:.1e}")
            failed = True
        else:
            logger.success(f"Jacobian consistency: max error {err:.3e}")
    else:
        logger.info("Explicit evaluation: no Jacobians produced")

    if args.batch:
        from pbflux.physics.jax_config import get_device_info
        from pbflux.numerics.batch import evaluate_batch

        logger.info(get_device_info())

        batch = evaluate_batch(
            kernel.kind, kernel.config, V_i[None], V_j[None], normal[None],
            sensor_i=np.array([diss_i.sensor]), sensor_j=np.array([diss_j.sensor]),
            lapl_i=diss_i.undivided_laplacian[None], lapl_j=diss_j.undivided_laplacian[None],
            nbr_i=np.array([diss_i.neighbors]), nbr_j=np.array([diss_j.neighbors]),
        )
        diff = float(np.max(np.abs(batch.residual[0] - result.residual)))
        if diff > 1e-12 * max(1.0, float(np.max(np.abs(result.residual)))):
            logger.error(f"Batched residual differs by {diff:.3e}")
            failed = True
        else:
            logger.success(f"Batched residual matches (max diff {diff:.3e})")

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
