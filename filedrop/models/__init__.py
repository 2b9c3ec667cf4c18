"""
SQLAlchemy модели данных
"""

from .base import Base, BaseModel, TZDateTime
from .download_event import AccessMethod, DownloadEvent
from .file import File
from .share_link import LinkType, SharedLink
from .team import Team, TeamFileShare, TeamMember, TeamRole
from .user import Profile, SubscriptionTier, User, UserRole

__all__ = [
    "Base",
    "BaseModel",
    "TZDateTime",
    "User",
    "UserRole",
    "Profile",
    "SubscriptionTier",
    "File",
    "SharedLink",
    "LinkType",
    "DownloadEvent",
    "AccessMethod",
    "Team",
    "TeamMember",
    "TeamRole",
    "TeamFileShare",
]
