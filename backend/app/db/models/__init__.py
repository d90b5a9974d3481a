"""Re-export all models so Base.metadata sees them."""

from app.db.models.config_document import ConfigDocument
from app.db.models.profile import Profile
from app.db.models.user_account import UserAccount

__all__ = [
    "ConfigDocument",
    "Profile",
    "UserAccount",
]
