from . import router

__all__ = ["router"]
