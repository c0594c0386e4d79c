from sqlalchemy import Column, DateTime, Integer, String

from otp_auth.database import Base


class UserEntry(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    phone = Column(String(32), nullable=False, unique=True)
    registered_at = Column(DateTime(timezone=True), nullable=False)
