import enum
from sqlalchemy import Column, String, ForeignKey, DateTime, Boolean, JSON
from cardvault.database import Base
from cardvault.models._base import new_id, utcnow

class NotificationType(str, enum.Enum):
    TRANSACTION = "transaction"
    REWARD = "reward"
    BILL = "bill"
    OFFER = "offer"
    STATEMENT = "statement"
    PAYMENT = "payment"
    OTHER = "other"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=new_id)
    card_id = Column(String(36), ForeignKey("cards.id"), index=True, nullable=True)
    user_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=True)

    title = Column(String, nullable=False)
    message = Column(String, nullable=False)
    type = Column(String(20), nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True, nullable=False)
    metadata_ = Column("metadata", JSON, nullable=True)
