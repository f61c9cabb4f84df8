"""
Alerts Router
The caller's alert outbox. Reading never clears it.
"""

from fastapi import APIRouter, Depends

from vaultstamp.core.identity import Identity, require_identity
from vaultstamp.routers.deps import get_file_registry
from vaultstamp.routers.schemas import MessageResponse
from vaultstamp.services.file_registry import FileRegistryService

router = APIRouter()


@router.get("", response_model=list[str])
async def get_alerts(
    identity: Identity = Depends(require_identity),
    registry: FileRegistryService = Depends(get_file_registry),
):
    """All alerts for the caller, oldest first."""
    return registry.get_alerts(identity)


@router.post("/dummy", response_model=MessageResponse)
def send_dummy_notification(
    identity: Identity = Depends(require_identity),
    registry: FileRegistryService = Depends(get_file_registry),
):
    """Append a fixed test alert to the caller's outbox."""
    return MessageResponse(message=registry.send_dummy_notification(identity))
