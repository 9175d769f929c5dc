from fastapi import APIRouter, Depends

from cardvault.deps import get_current_user, get_extractor, get_pipeline, get_storage
from cardvault.schemas.sms import SmsCreate, SmsParseResponse, SmsRead
from cardvault.schemas.user import UserRead
from cardvault.services.extraction import LLMExtractor
from cardvault.services.ingestion import IngestionPipeline
from cardvault.storage.interface import Storage

router = APIRouter(prefix="/api", tags=["SMS"])


# =========================
# SMS PARSER
# =========================
@router.post("/parse-sms", response_model=SmsParseResponse)
async def parse_sms(
    sms: SmsCreate,
    current_user: UserRead = Depends(get_current_user),
    pipeline: IngestionPipeline = Depends(get_pipeline),
    extractor: LLMExtractor = Depends(get_extractor),
):
    """
    Turn a bank SMS into a transaction on one of the caller's cards.

    The raw message is always kept in the SMS log, even when nothing
    could be extracted from it.
    """
    outcome = await pipeline.ingest_sms(current_user.id, sms, extractor.extract_transaction)
    return SmsParseResponse(success=True, transaction=outcome.transaction)


# =========================
# AUDIT LOG
# =========================
@router.get("/sms", response_model=list[SmsRead])
async def list_sms(
    current_user: UserRead = Depends(get_current_user),
    storage: Storage = Depends(get_storage),
):
    return await storage.list_sms_messages(current_user.id)
