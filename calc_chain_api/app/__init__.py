"""
Application package initializer.

This package contains the main entrypoint for the API and all of its
submodules.  Each domain (auth, calculations) exposes a router defined
in ``api/v1/endpoints`` and delegates to a service in ``services``.
Persistence lives in ``core.db`` and is handed to services explicitly
rather than through a module-level connection.
"""

from .main import app  # noqa: F401
