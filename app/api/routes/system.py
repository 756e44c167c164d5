from fastapi import APIRouter, Request

from api.dependencies.rate_limits import get_limiter
from core.config import settings

router = APIRouter(tags=["System"])
limiter = get_limiter()


# Load balancer health checks hit these every few seconds
@router.get("/version")
@limiter.limit("50/minute")
def get_version(request: Request):  # pylint: disable=unused-argument
    """Get the version of the application."""
    return {"version": settings.GIT_SHA}


@router.get("/health")
@limiter.limit("50/minute")
def get_health(request: Request):  # pylint: disable=unused-argument
    """Healthcheck endpoint."""
    return {"status": "ok"}


@router.get("/commands")
@limiter.limit("50/minute")
def get_commands(request: Request):
    """List the chat commands registered at startup."""
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        return {"commands": []}
    return {
        "commands": [
            {
                "trigger": d.trigger,
                "description": d.description,
                "important": d.important,
            }
            for d in registry.descriptors()
        ]
    }
