"""Direct metadata provider lookups."""
from fastapi import APIRouter, Depends, HTTPException

from ...ingest.providers import MetadataProvider, ProviderError
from ..dependencies import get_provider
from ..schemas import MetadataEnvelopeModel, MetadataSearchRequest, MetadataSearchResponse

router = APIRouter(prefix="/metadata", tags=["metadata"])


@router.post("/search", response_model=MetadataSearchResponse)
def search_metadata(
    request: MetadataSearchRequest,
    provider: MetadataProvider = Depends(get_provider),
) -> MetadataSearchResponse:
    """Return provider candidates for a title without touching the catalog."""

    try:
        results = provider.search(request.title, request.platform)
    except ProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    return MetadataSearchResponse(
        results=[MetadataEnvelopeModel.model_validate(result.to_dict()) for result in results]
    )
