"""
FastAPI entrypoint for the club fee settlement backend.
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from clubfee.core.config import settings
from clubfee.core.logging import configure_logging
from clubfee.api.router import api_router

configure_logging()

app = FastAPI(
    title="ClubFee API",
    description="Backend API for club meeting settlements",
    version="1.0.0"
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "ClubFee API is running"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
