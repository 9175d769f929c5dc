from sqlalchemy import Column, String, ForeignKey, DateTime, Integer
from cardvault.database import Base
from cardvault.models._base import new_id, utcnow

class CreditScore(Base):
    __tablename__ = "credit_scores"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), index=True, nullable=False)

    score = Column(Integer, nullable=False)  # 300-900
    provider = Column(String, nullable=False)  # CIBIL | Experian | Equifax | CRIF
    recorded_at = Column(DateTime(timezone=True), default=utcnow, index=True, nullable=False)
    factors = Column(String, nullable=True)
    suggestions = Column(String, nullable=True)
