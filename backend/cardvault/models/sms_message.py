from sqlalchemy import Column, String, ForeignKey, DateTime, Boolean, JSON
from cardvault.database import Base
from cardvault.models._base import new_id, utcnow

class SmsMessage(Base):
    __tablename__ = "sms_messages"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)

    phone_number = Column(String, nullable=False)
    message = Column(String, nullable=False)
    received_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    processed = Column(Boolean, nullable=False, default=False)
    extracted_data = Column(JSON, nullable=True)
