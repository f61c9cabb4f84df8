"""
Files Router
The caller's catalog: upload, list, existence check, download, delete.

Every endpoint acts on the catalog of the calling identity only. Handlers
that mutate the registry are plain functions, so FastAPI runs them (and the
snapshot write) on its thread pool.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.responses import Response

from vaultstamp.core.errors import ErrorResponse, InvalidInputError, NotFoundError
from vaultstamp.core.identity import Identity, require_identity
from vaultstamp.core.rate_limit import limiter, upload_limit
from vaultstamp.routers.deps import get_file_registry
from vaultstamp.routers.schemas import (
    DeleteResponse,
    ExistsResponse,
    FileSummary,
    UploadResponse,
)
from vaultstamp.services.file_registry import DEFAULT_MEDIA_TYPE, FileRegistryService
from vaultstamp.services.similarity import parse_fingerprint

router = APIRouter()


@router.get("", response_model=list[FileSummary])
async def get_files(
    identity: Identity = Depends(require_identity),
    registry: FileRegistryService = Depends(get_file_registry),
):
    """List every file in the caller's catalog."""
    return [record.to_summary() for record in registry.get_files(identity)]


@router.get("/exists", response_model=ExistsResponse)
async def check_file_exists(
    name: str = Query(..., description="Exact, case-sensitive file name"),
    identity: Identity = Depends(require_identity),
    registry: FileRegistryService = Depends(get_file_registry),
):
    """Does the caller already have a file with this name?"""
    return ExistsResponse(name=name, exists=registry.check_file_exists(identity, name))


@router.post(
    "/upload",
    response_model=UploadResponse,
    status_code=status.HTTP_200_OK,
    responses={422: {"model": ErrorResponse}, 429: {"model": ErrorResponse}},
)
@limiter.limit(upload_limit)
def upload_file(
    request: Request,
    file: UploadFile = File(...),
    fingerprint: str = Form("0", description="64-bit perceptual hash, decimal or 0x-hex"),
    media_type: Optional[str] = Form(None, description="Defaults to the part's content type"),
    name: Optional[str] = Form(None, description="Defaults to the uploaded filename"),
    identity: Identity = Depends(require_identity),
    registry: FileRegistryService = Depends(get_file_registry),
):
    """
    Upload a file into the caller's catalog.

    Content already registered to another owner is not stored; the response
    then has status "rejected" and explains why.
    """
    try:
        phash = parse_fingerprint(fingerprint)
    except ValueError as e:
        raise InvalidInputError(str(e), field="fingerprint")

    file_name = name if name is not None else (file.filename or "")
    content = file.file.read()

    result = registry.upload_file(
        identity=identity,
        name=file_name,
        content=content,
        media_type=media_type or file.content_type or DEFAULT_MEDIA_TYPE,
        fingerprint=phash,
    )
    return UploadResponse(**result.to_dict())


@router.get("/{name:path}/content", responses={404: {"model": ErrorResponse}})
async def get_file(
    name: str,
    identity: Identity = Depends(require_identity),
    registry: FileRegistryService = Depends(get_file_registry),
):
    """Download one of the caller's files."""
    record = registry.get_file(identity, name)
    if record is None:
        raise NotFoundError("File", name)
    return Response(
        content=record.content,
        media_type=record.media_type,
        headers={"X-Content-Hash": record.content_hash},
    )


@router.delete("/{name:path}", response_model=DeleteResponse, responses={404: {"model": ErrorResponse}})
def delete_file(
    name: str,
    identity: Identity = Depends(require_identity),
    registry: FileRegistryService = Depends(get_file_registry),
):
    """
    Remove a file from the caller's catalog.

    The content stays registered to the caller, so nobody else can claim it.
    """
    if not registry.delete_file(identity, name):
        raise NotFoundError("File", name)
    return DeleteResponse(name=name, deleted=True)
