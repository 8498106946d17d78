from fastapi import APIRouter

from vesper.api import health
from vesper.features.tasks import router as tasks_router

api_router = APIRouter()

# Include all sub-routers
api_router.include_router(health.router)
api_router.include_router(tasks_router)
