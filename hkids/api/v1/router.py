from fastapi import APIRouter

from .kids import router as kids_router
from .parent import router as parent_router

# Create main API router
api_router = APIRouter()

# Include all routers
api_router.include_router(kids_router, tags=["Kids"])
api_router.include_router(parent_router, tags=["Parent"])
