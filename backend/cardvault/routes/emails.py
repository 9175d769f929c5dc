from fastapi import APIRouter, Depends

from cardvault.deps import get_broadcaster, get_current_user, get_extractor, get_storage
from cardvault.schemas.extraction import EmailBatch, EmailDigestResponse
from cardvault.schemas.user import UserRead
from cardvault.services.broadcast import ConnectionManager
from cardvault.services.email_digest import digest_emails
from cardvault.services.extraction import LLMExtractor
from cardvault.storage.interface import Storage

router = APIRouter(prefix="/api", tags=["Email"])

@router.post("/parse-emails", response_model=EmailDigestResponse)
async def parse_emails(
    batch: EmailBatch,
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
    broadcaster: ConnectionManager = Depends(get_broadcaster),
    extractor: LLMExtractor = Depends(get_extractor),
):
    """Summarise card emails (statements, offers, bills) into notifications."""
    return await digest_emails(storage, broadcaster, current_user.id, batch.emails, extractor.analyze_email)
