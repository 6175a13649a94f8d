"""Top-level API router aggregation."""

from fastapi import APIRouter

from . import state

api_router = APIRouter(prefix="/api")

api_router.include_router(state.router)
