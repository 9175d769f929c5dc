import enum
from sqlalchemy import Column, String, ForeignKey, DateTime, Numeric, Boolean, Integer
from cardvault.database import Base
from cardvault.models._base import new_id, utcnow

class AutopayType(str, enum.Enum):
    MINIMUM = "minimum"
    FULL = "full"
    FIXED = "fixed"


class AutopaySettings(Base):
    __tablename__ = "autopay_settings"

    id = Column(String(36), primary_key=True, default=new_id)
    # one row per card
    card_id = Column(String(36), ForeignKey("cards.id"), unique=True, nullable=False)

    enabled = Column(Boolean, nullable=False, default=False)
    payment_type = Column(String(20), nullable=False, default=AutopayType.MINIMUM.value)
    days_before = Column(Integer, nullable=False, default=3)
    fixed_amount = Column(Numeric(12, 2), nullable=True)
    payment_method = Column(String(50), nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
