"""Route planning: stop sequencing, route CRUD and stop assignment"""

from .router import router

__all__ = ["router"]
