"""
Main entrypoint for the FastAPI server
"""

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from core.lifespan import lifespan
from core.config import get_settings
from core.errors import (
    ExhaustedRetriesError,
    InvalidInputError,
    NotFoundError,
    StorageError,
)
from core.logger import logger

from api.files.routes import router as files_router
from api.stats.routes import router as stats_router
from api.urls.routes import router as urls_router


# Customize route id's
# Helpful for creating sensible names in the client
def custom_generate_unique_id(route: APIRoute):
    """ Generate unique route IDs based on route name """
    return f"{route.name}"  # these must be unique


# Create schema & router
app = FastAPI(
    title=get_settings().APP_NAME,
    lifespan=lifespan,
    generate_unique_id_function=custom_generate_unique_id
)

# CORS settings to allow client-server communication
# Set with env variable
origins = [origin for origin in [get_settings().client_origin] if origin]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Map store errors to HTTP responses
@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc) or "Invalid input"},
    )


# Expired content is reported exactly like content that never existed
@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": "Not found"},
    )


@app.exception_handler(ExhaustedRetriesError)
@app.exception_handler(StorageError)
async def server_error_handler(request: Request, exc: Exception):
    logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Could not store content"},
    )


# Health check endpoint for monitoring
@app.get("/api/health", tags=["health"])
def health_check():
    return {"status": "ok", "message": f"{get_settings().APP_NAME} is running"}


# The files router owns the catch-all GET /{identifier}, so it goes last
app.include_router(stats_router)
app.include_router(urls_router)
app.include_router(files_router)


if __name__ == "__main__":
    # For debugging purposes
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
