from sqlalchemy import Column, String, ForeignKey, DateTime, Numeric
from cardvault.database import Base
from cardvault.models._base import new_id, utcnow

class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=new_id)
    bill_id = Column(String(36), ForeignKey("bills.id"), index=True, nullable=False)
    card_id = Column(String(36), ForeignKey("cards.id"), index=True, nullable=False)

    amount = Column(Numeric(12, 2), nullable=False)
    payment_date = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    payment_method = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default="completed")
    transaction_id = Column(String, nullable=True)  # reference from the payment rail
