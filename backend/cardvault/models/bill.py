import enum
from sqlalchemy import Column, String, ForeignKey, DateTime, Numeric
from cardvault.database import Base
from cardvault.models._base import new_id, utcnow

class BillStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"


class Bill(Base):
    __tablename__ = "bills"

    id = Column(String(36), primary_key=True, default=new_id)
    card_id = Column(String(36), ForeignKey("cards.id"), index=True, nullable=False)

    amount = Column(Numeric(12, 2), nullable=False)
    due_date = Column(DateTime(timezone=True), nullable=False)
    bill_month = Column(String(7), nullable=False)  # YYYY-MM
    minimum_due = Column(Numeric(12, 2), nullable=False)
    status = Column(String(20), nullable=False, default=BillStatus.PENDING.value)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
