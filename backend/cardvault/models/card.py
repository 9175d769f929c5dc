from sqlalchemy import Column, String, ForeignKey, DateTime, Numeric, Integer
from cardvault.database import Base
from cardvault.models._base import new_id, utcnow

class Card(Base):
    __tablename__ = "cards"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)

    card_name = Column(String, nullable=False)
    bank_name = Column(String, nullable=False)
    last_four_digits = Column(String(4), nullable=False)
    card_network = Column(String(20), nullable=False)  # visa | mastercard | rupay | amex
    credit_limit = Column(Numeric(12, 2), nullable=False)
    current_balance = Column(Numeric(12, 2), nullable=False, default=0)

    due_date = Column(Integer, nullable=True)       # day of month
    billing_cycle = Column(Integer, nullable=True)  # day of month
    card_color = Column(String(7), default="#8B5CF6")

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
