"""
API package for shotsieve.

Provides the Flask blueprint exposing a grouping session as JSON.
"""

from __future__ import annotations

from .routes import api, register_engine

__all__ = ['api', 'register_engine']
