"""
Middleware package for the RentEasy API.
"""

from .validation import ValidationMiddleware

__all__ = ["ValidationMiddleware"]
