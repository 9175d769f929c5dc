import logging
from typing import Awaitable, Callable, Optional

from cardvault.models.notification import NotificationType
from cardvault.schemas.extraction import EmailAnalysis, EmailDigestResponse, IncomingEmail
from cardvault.schemas.notification import NotificationCreate
from cardvault.services.broadcast import ConnectionManager
from cardvault.storage.interface import Storage

logger = logging.getLogger(__name__)

EmailAnalyzer = Callable[[str, str], Awaitable[Optional[EmailAnalysis]]]

TITLES = {
    "bill": "Credit Card Bill",
    "offer": "New Offer Available",
    "statement": "Monthly Statement",
}


def build_notification(email: IncomingEmail, analysis: EmailAnalysis) -> NotificationCreate:
    message = analysis.summary
    if analysis.type == "bill" and analysis.bill_amount and analysis.due_date:
        message = f"Bill of ₹{analysis.bill_amount} due on {analysis.due_date}. {analysis.summary}"

    changes = None
    if analysis.changes:
        changes = [c.model_dump(by_alias=True) for c in analysis.changes]

    return NotificationCreate(
        title=TITLES[analysis.type],
        message=message,
        type=NotificationType(analysis.type),
        metadata={"emailId": email.id, "changes": changes, "from": email.sender},
    )


async def digest_emails(
    storage: Storage,
    broadcaster: ConnectionManager,
    user_id: str,
    emails: list[IncomingEmail],
    analyze: EmailAnalyzer,
) -> EmailDigestResponse:
    """Turn card-related emails into notifications, one email at a time."""
    processed = 0

    for email in emails:
        try:
            analysis = await analyze(email.subject, email.body)
            if analysis is None or analysis.type == "other":
                continue

            notification = await storage.create_notification(user_id, build_notification(email, analysis))
            await broadcaster.broadcast(notification, user_id)
            processed += 1
        except Exception:
            logger.exception("Error analyzing email %s", email.id)

    return EmailDigestResponse(success=True, count=processed, total=len(emails))
