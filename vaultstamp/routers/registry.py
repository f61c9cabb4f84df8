"""
Registry Router
Cross-owner queries: ownership verification and similarity search.
Also mints identities for clients without an identity provider.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from vaultstamp.core.errors import ErrorResponse, InvalidInputError
from vaultstamp.core.identity import generate_identity
from vaultstamp.routers.deps import get_file_registry
from vaultstamp.routers.schemas import IdentityResponse, SimilarityMatchResponse, VerifyResponse
from vaultstamp.services.file_registry import FileRegistryService
from vaultstamp.services.similarity import parse_fingerprint

router = APIRouter()


@router.get("/verify/{content_hash}", response_model=VerifyResponse)
async def verify_file_by_hash(
    content_hash: str,
    registry: FileRegistryService = Depends(get_file_registry),
):
    """
    Who registered this content, and when?

    An unknown hash is not an error: found is false and record is null.
    """
    record = registry.verify_by_hash(content_hash)
    return VerifyResponse(
        content_hash=content_hash,
        found=record is not None,
        record=record.to_verification() if record else None,
    )


@router.get(
    "/similar",
    response_model=list[SimilarityMatchResponse],
    responses={422: {"model": ErrorResponse}},
)
async def find_files_with_similar_phash(
    fingerprint: str = Query(..., description="64-bit perceptual hash, decimal or 0x-hex"),
    threshold: Optional[int] = Query(None, ge=0, le=100, description="Minimum similarity percent"),
    registry: FileRegistryService = Depends(get_file_registry),
):
    """Registered files whose fingerprint is at least `threshold`% similar."""
    try:
        query = parse_fingerprint(fingerprint)
    except ValueError as e:
        raise InvalidInputError(str(e), field="fingerprint")
    return [match.to_dict() for match in registry.find_similar(query, threshold)]


@router.post("/identity", response_model=IdentityResponse)
async def create_identity():
    """Mint a fresh opaque identity. Nothing is stored until it uploads."""
    return IdentityResponse(identity=generate_identity())
