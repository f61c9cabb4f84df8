"""Shared router dependencies."""

from fastapi import Request

from vaultstamp.services.file_registry import FileRegistryService


def get_file_registry(request: Request) -> FileRegistryService:
    """The registry service created by create_app()."""
    return request.app.state.file_registry
