import logging
from fastapi import FastAPI, Request
from doxie_upload.api.routers import upload
from doxie_upload.core.config import Settings

logger = logging.getLogger("doxie_upload")


def create_app(settings: Settings) -> FastAPI:
    """
    Create the FastAPI application serving uploads under settings.ROOT.
    """
    # The upload route catches every path, so no docs routes
    app = FastAPI(title=settings.PROJECT_NAME, docs_url=None, redoc_url=None, openapi_url=None)
    app.state.settings = settings

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        # Logged per request, uvicorn does not expose connections to the app
        if request.client is not None:
            logger.info(f"Request from {request.client.host}:{request.client.port}")
        response = await call_next(request)
        logger.debug(f"Response {response.status_code} to {request.method} {request.url.path}")
        return response

    # Include routers
    app.include_router(upload.router)

    return app
