from .auth import router as auth_router
from .groups import router as groups_router
from .media import router as media_router
from .links import router as links_router
from .payments import router as payments_router
from .admin import router as admin_router
from .events import router as events_router
from .health import router as health_router

__all__ = [
    "auth_router",
    "groups_router",
    "media_router",
    "links_router",
    "payments_router",
    "admin_router",
    "events_router",
    "health_router",
]
