"""Expose the test repository tree settings router."""

from .router import router

__all__ = ["router"]
