# cardvault/models/transaction.py
import enum
from sqlalchemy import Column, String, ForeignKey, DateTime, Numeric
from cardvault.database import Base
from cardvault.models._base import new_id, utcnow

class TransactionSource(str, enum.Enum):
    MANUAL = "manual"
    SMS = "sms"


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=new_id)
    card_id = Column(String(36), ForeignKey("cards.id"), index=True, nullable=False)

    merchant_name = Column(String, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    category = Column(String, nullable=False)
    transaction_date = Column(DateTime(timezone=True), default=utcnow, index=True, nullable=False)
    description = Column(String, nullable=True)
    source = Column(String(10), nullable=False, default=TransactionSource.MANUAL.value)
