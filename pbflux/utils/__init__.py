"""Utilities shared across pbflux."""

from .logging import setup_logging

__all__ = ['setup_logging']
