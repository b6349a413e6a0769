"""Backend configuration for the array libraries used by pbflux."""
