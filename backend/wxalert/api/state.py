"""GET  /api/state        - Current poll state, alerts and reading.
   POST /api/refresh      - Trigger a manual refresh.
   PUT  /api/auto-refresh - Enable or disable the 10-minute auto-refresh.
"""

import logging

from fastapi import APIRouter, HTTPException

from ..config import settings
from ..schemas.state import (
    AutoRefreshRequest,
    Location,
    PollStateOut,
    poll_state_to_schema,
)
from ..services.poller import PollController

logger = logging.getLogger(__name__)
router = APIRouter()

# Set by main.py during startup
_controller: PollController | None = None


def set_controller(controller: PollController | None) -> None:
    global _controller
    _controller = controller


def configured_location() -> Location:
    return Location(
        name=settings.location_name,
        latitude=settings.latitude,
        longitude=settings.longitude,
    )


def _require_controller() -> PollController:
    if _controller is None:
        raise HTTPException(status_code=503, detail="Poll controller not running")
    return _controller


@router.get("/state", response_model=PollStateOut)
async def get_state():
    """Return the latest PollState snapshot."""
    controller = _require_controller()
    return poll_state_to_schema(controller.state, configured_location())


@router.post("/refresh", response_model=PollStateOut, status_code=202)
async def post_refresh():
    """Start a fetch now; the result arrives over /ws/live or the next GET."""
    controller = _require_controller()
    controller.trigger_manual_refresh()
    logger.info("Manual refresh requested")
    return poll_state_to_schema(controller.state, configured_location())


@router.put("/auto-refresh", response_model=PollStateOut)
async def put_auto_refresh(req: AutoRefreshRequest):
    controller = _require_controller()
    await controller.set_auto_refresh(req.enabled)
    return poll_state_to_schema(controller.state, configured_location())


@router.get("/health")
async def get_health():
    stats = _controller.stats if _controller else {}
    return {"status": "ok", "running": _controller is not None, **stats}
