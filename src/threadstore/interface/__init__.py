"""
Interface module - External interfaces to threadstore.

This module contains:
- api.py: FastAPI REST API
- cli.py: Command-line interface
"""

from threadstore.interface.api import create_app

__all__ = [
    "create_app",
]
