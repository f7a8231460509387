"""
MedInvest API package.

Provides the FastAPI application for the MedInvest authentication broker.
"""

from .app import app, create_app

__all__ = ["app", "create_app"]
