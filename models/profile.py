from sqlalchemy import Boolean, Column, DateTime, String, func

from database import Base


class Profile(Base):
    __tablename__ = "profiles"

    # Same id as the auth provider's user
    id = Column(String(64), primary_key=True, index=True)
    first_name = Column(String(128), nullable=False, default="")
    last_name = Column(String(128), nullable=False, default="")
    email = Column(String(256), nullable=False)
    phone = Column(String(32), nullable=True, index=True)
    address = Column(String(512), nullable=True)
    city = Column(String(128), nullable=True)
    state = Column(String(128), nullable=True)
    zip_code = Column(String(16), nullable=True)
    phone_verified = Column(Boolean, nullable=False, default=False)
    phone_verified_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
