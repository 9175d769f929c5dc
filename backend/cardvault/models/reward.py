from sqlalchemy import Column, String, ForeignKey, DateTime, Numeric, Boolean
from cardvault.database import Base
from cardvault.models._base import new_id, utcnow

class Reward(Base):
    __tablename__ = "rewards"

    id = Column(String(36), primary_key=True, default=new_id)
    card_id = Column(String(36), ForeignKey("cards.id"), index=True, nullable=False)

    reward_type = Column(String, nullable=False)   # cashback | points | voucher ...
    reward_value = Column(String, nullable=False)  # e.g. "₹500 Amazon voucher"
    condition = Column(String, nullable=False)
    threshold = Column(Numeric(12, 2), nullable=False)
    current_progress = Column(Numeric(12, 2), nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    expiry_date = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True, nullable=False)
