from fastapi                                import APIRouter
from .notifications.notifications           import router as notifications_router


api_router = APIRouter(prefix="/api/v1")

api_router.include_router(notifications_router)
