from functools import lru_cache

from fastapi import Depends, Request

from cardvault.core.config import settings
from cardvault.core.exceptions import NotAuthenticatedError
from cardvault.core.security import decode_access_token
from cardvault.schemas.user import UserRead
from cardvault.services.broadcast import ConnectionManager, manager
from cardvault.services.extraction import LLMExtractor
from cardvault.services.ingestion import IngestionPipeline
from cardvault.storage.interface import Storage


@lru_cache
def get_storage() -> Storage:
    if settings.STORAGE_BACKEND == "memory":
        from cardvault.storage.memory import MemoryStorage
        return MemoryStorage()
    from cardvault.storage.sql import SqlStorage
    return SqlStorage()


def get_broadcaster() -> ConnectionManager:
    return manager


@lru_cache
def get_extractor() -> LLMExtractor:
    return LLMExtractor()


def get_pipeline(
    storage: Storage = Depends(get_storage),
    broadcaster: ConnectionManager = Depends(get_broadcaster),
) -> IngestionPipeline:
    return IngestionPipeline(storage, broadcaster)


async def get_current_user(request: Request, storage: Storage = Depends(get_storage)) -> UserRead:
    token = request.headers.get("Authorization")
    if not token:
        raise NotAuthenticatedError("Missing token")

    payload = decode_access_token(token)
    if not payload:
        raise NotAuthenticatedError("Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise NotAuthenticatedError("Invalid token")

    user = await storage.get_user(user_id)
    if not user:
        raise NotAuthenticatedError("Unknown user")
    return user
