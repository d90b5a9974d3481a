"""Profile model: public page keyed by username, owning the media sub-document."""

from datetime import UTC, datetime

from sqlalchemy import JSON, Boolean, Column, DateTime, String

from app.db.base import Base


class Profile(Base):
    __tablename__ = "profiles"

    username = Column(String(64), primary_key=True)
    uid = Column(String(255), nullable=False, index=True)

    published = Column(Boolean, nullable=False, default=False)
    template_id = Column(String(64), nullable=True)
    theme = Column(JSON, nullable=True)
    content = Column(JSON, nullable=False, default=dict)

    # {"avatarUrl": str | None, "images": [url], "videos": [url], "updatedAt": iso}
    # Written only by the media commit transaction.
    media = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC))

    def to_document(self) -> dict:
        """Document-shaped view consumed by snapshot_from_document()."""
        return {
            "uid": self.uid,
            "published": self.published,
            "templateId": self.template_id,
            "theme": self.theme,
            "content": self.content,
            "media": self.media,
        }
