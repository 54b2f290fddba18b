from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> dict[str, str]:
    """Liveness only; does not start or inspect the follow engine."""

    return {"status": "ok"}
