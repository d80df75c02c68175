from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from settings.database import Base


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class BaseModel(Base):
    __abstract__ = True

    created_by = Column(String(255), nullable=True)
    modified_by = Column(String(255), nullable=True)
    created_on = Column(DateTime, server_default=func.now(), default=datetime.utcnow, nullable=False)
    modified_on = Column(DateTime, server_default=func.now(), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
