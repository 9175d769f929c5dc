"""
Exceptions for CardVault.

Storage and collaborator errors are plain exceptions; API errors are
HTTPException subclasses so routes can raise them directly.
"""

from fastapi import HTTPException, status


class StorageError(Exception):
    """Base class for data store failures."""


class OwnershipError(StorageError):
    """
    A referenced resource is missing or belongs to another user.

    Both cases raise the same error; callers cannot tell another user's
    id from one that does not exist.
    """

    def __init__(self, resource: str, resource_id: str):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} {resource_id} not found")


class ExtractionError(Exception):
    """The text-extraction collaborator produced nothing usable."""

    def __init__(self, detail: str = "Could not extract transaction from SMS"):
        self.detail = detail
        super().__init__(detail)


class NoCardError(Exception):
    """The user has no card to attach an extracted transaction to."""

    def __init__(self, detail: str = "No card found to associate transaction with"):
        self.detail = detail
        super().__init__(detail)


class ResourceNotFoundError(HTTPException):
    """Resource not found (or not visible to the caller)."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} {resource_id} not found"
        )


class NotAuthenticatedError(HTTPException):
    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"}
        )
