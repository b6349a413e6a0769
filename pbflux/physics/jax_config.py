"""JAX configuration for the batched kernels: 64-bit precision."""

import jax
import jax.numpy as jnp

# Batched results must agree with the float64 per-face kernels
jax.config.update("jax_enable_x64", True)


def get_device_info() -> str:
    """Get available JAX devices as string."""
    devices = jax.devices()
    device_strs = [f"{d.platform}:{d.id}" for d in devices]
    return f"JAX devices: {device_strs}"


__all__ = ['jax', 'jnp', 'get_device_info']
