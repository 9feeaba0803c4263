"""Job scheduling: service-day rules, job generation and subscription job sync"""

from .router import router

__all__ = ["router"]
