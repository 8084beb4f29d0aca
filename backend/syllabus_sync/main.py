from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from syllabus_sync.api.api import api_router
from syllabus_sync.core.config import settings
from syllabus_sync.core.logging import configure_logging

configure_logging()

app = FastAPI(title=settings.PROJECT_NAME)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/healthz", tags=["health"])
def root_health() -> dict[str, str]:
    """Basic health endpoint."""
    return {"status": "ok"}


app.include_router(api_router, prefix="/api")
