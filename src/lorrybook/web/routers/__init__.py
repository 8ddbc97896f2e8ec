from lorrybook.web.routers.auth import router as auth_router
from lorrybook.web.routers.numbering import router as numbering_router

__all__ = [
    "auth_router",
    "numbering_router",
]
