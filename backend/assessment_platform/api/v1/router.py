"""Main API v1 router combining all endpoints."""

from fastapi import APIRouter

from assessment_platform.api.v1.assessments import router as assessments_router
from assessment_platform.api.v1.responses import router as responses_router
from assessment_platform.core.config import settings

# Create main v1 router
api_router = APIRouter(prefix=settings.API_V1_STR)

# Include all endpoint routers
api_router.include_router(assessments_router)
api_router.include_router(responses_router)
