from fastapi import APIRouter

from syllabus_sync.api.endpoints import assignments, upload

api_router = APIRouter()
api_router.include_router(upload.router, prefix="/upload", tags=["upload"])
api_router.include_router(assignments.router, prefix="/assignments", tags=["assignments"])
