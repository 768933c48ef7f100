"""
Workflows router package.

Exports the router for contract workflow endpoints.
"""

from .workflows_router import router

__all__ = ["router"]
