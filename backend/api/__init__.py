from .routes import router
from .routes_settings import router as settings_router
from .websocket import handle_websocket

__all__ = ["router", "settings_router", "handle_websocket"]
