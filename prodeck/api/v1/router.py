"""
API v1 router configuration.
"""
from fastapi import APIRouter

from prodeck.api.v1.endpoints import decks, health

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(decks.router, prefix="/decks", tags=["decks"])
