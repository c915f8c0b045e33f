"""
Top‑level package for the Calculation Chain API.

This file makes ``calc_chain_api`` a Python package so that modules
within ``app`` can be imported using fully qualified names like
``calc_chain_api.app.main``.

The package provides no public exports; all functionality lives in
submodules under ``app``.
"""

__all__ = []
