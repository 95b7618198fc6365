from sqlalchemy import Column, String, Boolean, DateTime, Integer
from datetime import datetime

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class User(Base):
    """Community member: credentials, refresh session and reputation projection"""
    __tablename__ = "users"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(80), nullable=False)
    department = Column(String(80), nullable=False)
    year = Column(Integer, nullable=False)
    roll_number = Column(String(40), unique=True, index=True, nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    mobile_number = Column(String(10), nullable=False)
    password_hash = Column(String(255), nullable=False)

    # Refresh session (null hash means no active refresh session)
    refresh_token_hash = Column(String(255), nullable=True)
    refresh_token_issued_at = Column(DateTime, nullable=True)

    joined_community = Column(Boolean, default=False, nullable=False)

    # Reputation projection, mutated only by ReputationLedger
    reputation_score = Column(Integer, default=0, nullable=False)
    contribution_count = Column(Integer, default=0, nullable=False)
    accepted_answers_count = Column(Integer, default=0, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_active_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<User {self.email}>"
