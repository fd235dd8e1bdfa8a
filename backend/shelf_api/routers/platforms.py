"""Platform lookup endpoints."""
from fastapi import APIRouter, Depends

from ..dependencies import get_platform_store
from ..schemas import PlatformModel
from ..stores.platform_store import PlatformStore

router = APIRouter(prefix="/platforms", tags=["platforms"])


@router.get("", response_model=list[PlatformModel])
def list_platforms(store: PlatformStore = Depends(get_platform_store)) -> list[PlatformModel]:
    """Return every known platform ordered by name."""

    return store.list()
