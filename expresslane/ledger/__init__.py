from . import router
from .service import LedgerService

__all__ = ["router", "LedgerService"]
