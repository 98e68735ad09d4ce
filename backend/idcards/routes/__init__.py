"""ID Card Studio Routes"""

from .templates import router as templates_router
from .forms import router as forms_router
from .cards import router as cards_router
from .companies import router as companies_router
from .files import router as files_router

__all__ = [
    "templates_router",
    "forms_router",
    "cards_router",
    "companies_router",
    "files_router",
]
