"""ConfigDocument model: externally editable JSON configuration (plan and billing catalogs)."""

from datetime import UTC, datetime

from sqlalchemy import JSON, Column, DateTime, String

from app.db.base import Base


class ConfigDocument(Base):
    __tablename__ = "config_documents"

    name = Column(String(100), primary_key=True)
    data = Column(JSON, nullable=True)
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )
