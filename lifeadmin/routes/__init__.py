from .status_automation import router as status_router

__all__ = ["status_router"]
