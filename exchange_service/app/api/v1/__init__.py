from fastapi import APIRouter

from .bookings import router as bookings_router
from .credits import router as credits_router
from .dashboard import router as dashboard_router
from .reviews import router as reviews_router

api_router = APIRouter()
api_router.include_router(bookings_router, prefix="/bookings", tags=["bookings"])
api_router.include_router(reviews_router, prefix="/reviews", tags=["reviews"])
api_router.include_router(credits_router)  # prefix는 router 파일 내부에서 정의 (/credits)
api_router.include_router(dashboard_router)  # prefix는 router 파일 내부에서 정의 (/dashboard)
