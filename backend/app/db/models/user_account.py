"""UserAccount model: subscription state per uid, maintained by the billing process."""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, String

from app.db.base import Base


class UserAccount(Base):
    __tablename__ = "users"

    uid = Column(String(255), primary_key=True)

    # Raw declared plan; normalised on read (unknown values mean free)
    plan = Column(String(50), nullable=True)
    plan_expires_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )
