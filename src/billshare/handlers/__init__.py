from billshare.handlers.bills import bills_router
from billshare.handlers.health import health_router
from billshare.handlers.upload import upload_router

__all__ = ["bills_router", "health_router", "upload_router"]
