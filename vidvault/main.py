"""FastAPI application entry point."""

from pathlib import Path

from fastapi import FastAPI, Response
from fastapi.staticfiles import StaticFiles

from vidvault.core.config import settings
from vidvault.core.logging import setup_logging
from vidvault.core.metrics import get_content_type, get_metrics, set_app_info
from vidvault.core.middleware import install_middleware
from vidvault.modules.video.router import router as video_router

setup_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)
set_app_info(settings.VERSION, settings.ENVIRONMENT)

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="""
## Video upload API

Uploads are remuxed for fast start, classified by aspect ratio and stored
in object storage. All upload endpoints require a JWT bearer token.

```
Authorization: Bearer <access_token>
```
    """,
    openapi_tags=[
        {"name": "health", "description": "Health check endpoints"},
        {"name": "videos", "description": "Video and thumbnail uploads"},
    ],
)

install_middleware(app, max_body_size=settings.MAX_VIDEO_UPLOAD_SIZE)


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


@app.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Prometheus scrape endpoint."""
    return Response(content=get_metrics(), media_type=get_content_type())


app.include_router(video_router, prefix=settings.API_PREFIX)

Path(settings.ASSETS_ROOT).mkdir(parents=True, exist_ok=True)
app.mount("/assets", StaticFiles(directory=settings.ASSETS_ROOT), name="assets")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("vidvault.main:app", host="0.0.0.0", port=settings.PORT)
