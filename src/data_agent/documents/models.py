"""Data models for saved documents."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from sqlalchemy import Column, DateTime, Index, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


# ============================================================================
# SQLAlchemy Models (Database)
# ============================================================================


class SharedDocumentModel(Base):
    """A generated document kept for sharing until it expires."""

    __tablename__ = "shared_documents"

    id = Column(String(64), primary_key=True)
    content = Column(Text, nullable=False)
    model = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False)

    __table_args__ = (Index("idx_shared_documents_expires_at", "expires_at"),)


# ============================================================================
# Pydantic Models (API/Validation)
# ============================================================================


class DocumentRecord(BaseModel):
    """A saved document as returned by the store."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    content: str
    model: str | None = None
    created_at: datetime
    expires_at: datetime


class DocumentInfo(BaseModel):
    """Document metadata without the content body."""

    id: str
    model: str | None = None
    created_at: datetime
    expires_at: datetime
    size: int

    @classmethod
    def from_record(cls, record: DocumentRecord) -> "DocumentInfo":
        return cls(
            id=record.id,
            model=record.model,
            created_at=record.created_at,
            expires_at=record.expires_at,
            size=len(record.content),
        )
