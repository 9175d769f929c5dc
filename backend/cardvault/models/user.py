from sqlalchemy import Column, String, DateTime
from cardvault.database import Base
from cardvault.models._base import new_id, utcnow

class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)

    # identity provider subject, stable across logins
    external_id = Column(String, unique=True, index=True, nullable=False)

    email = Column(String, index=True, nullable=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    profile_image_url = Column(String, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
