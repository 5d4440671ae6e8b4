"""Storage client utilities."""

from .spaces_client import (
    DOCUMENT_FOLDERS,
    FileValidationError,
    SpacesClient,
    StorageError,
    get_storage_client,
    validate_file,
)

__all__ = [
    "DOCUMENT_FOLDERS",
    "FileValidationError",
    "SpacesClient",
    "StorageError",
    "get_storage_client",
    "validate_file",
]
