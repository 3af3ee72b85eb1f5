"""Main FastAPI application."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from paws4life import __version__
from paws4life.api.endpoints import router
from paws4life.utils.logging import setup_logging

setup_logging()

app = FastAPI(
    title="paws4life.ai",
    description=(
        "Dog-care advice assistant with grounded answers, profile-targeted "
        "sponsored listings and a nearby-services map."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Conversation",
            "description": "Ask dog-care questions; answers cite their web and map sources.",
        },
        {
            "name": "Profile",
            "description": "Read and update the session's dog profile.",
        },
        {
            "name": "Ads",
            "description": "Sponsored listings ranked for the active dog profile.",
        },
        {
            "name": "Places",
            "description": "Points of interest around the user's location.",
        },
        {
            "name": "Health",
            "description": "Service health monitoring and status checks.",
        },
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("paws4life.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
