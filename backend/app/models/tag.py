from sqlalchemy import Column, String, DateTime, Integer
from datetime import datetime

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class Tag(Base):
    """Lower-cased tag name with an append-only usage counter"""
    __tablename__ = "tags"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(24), unique=True, index=True, nullable=False)
    usage_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
