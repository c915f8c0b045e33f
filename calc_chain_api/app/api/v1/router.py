"""
Top‑level router for version 1 of the API.

This router aggregates the domain routers under a unified prefix.
When new domains are introduced, include their routers here.
"""

from fastapi import APIRouter

from .endpoints import auth, calculations, health

router = APIRouter()

# The health router defines its own "/health" path internally.
router.include_router(health.router, tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(calculations.router, prefix="/calculations", tags=["calculations"])
