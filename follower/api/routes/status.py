"""Status endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from follower.api.schemas.models import CommandSchema, StatusSchema
from follower.api.services.engine import FollowEngine
from follower.api.services.state import get_engine

router = APIRouter(tags=["status"])


@router.get("/status", response_model=StatusSchema)
def status(engine: FollowEngine = Depends(get_engine)) -> StatusSchema:
    """Return the latest regime, primary box and actuator command."""

    result = engine.latest_result()
    if result is None:
        return StatusSchema(
            running=engine.running,
            frames_processed=engine.frames_processed,
            error=engine.last_error,
        )
    decision = result.decision
    return StatusSchema(
        running=engine.running,
        frame_id=result.frame_id,
        regime=decision.regime.value,
        primary_box=decision.primary_box.as_tuple() if decision.primary_box else None,
        command=CommandSchema(**result.command.to_dict()),
        detections=len(result.detections),
        fps=result.fps,
        frame_size=decision.frame_size,
        frames_processed=engine.frames_processed,
        error=engine.last_error,
    )
