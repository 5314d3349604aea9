"""
API routes for the benefit eligibility engine
"""

from .eligibility import router as eligibility_router

__all__ = [
    "eligibility_router"
]
