"""Smartech Integrator - SDK integration planning and patching for mobile projects."""

__version__ = "0.1.0"
