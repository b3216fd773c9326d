from app.models.comment import Comment, CommentLike
from app.models.family import (
    Family,
    FamilyMemberPermission,
    FamilyMembership,
    FamilyRole,
    MembershipType,
)
from app.models.file import FileType, StoredFile
from app.models.invitation import Invitation, InvitationStatus
from app.models.member import Gender, Member, MemberParentLink, MemberSpouseLink, MemberStatus
from app.models.notification import Notification, NotificationType
from app.models.post import Post, PostLike, PostVisibility
from app.models.user import User

__all__ = [
    "Comment",
    "CommentLike",
    "Family",
    "FamilyMemberPermission",
    "FamilyMembership",
    "FamilyRole",
    "FileType",
    "Gender",
    "Invitation",
    "InvitationStatus",
    "Member",
    "MemberParentLink",
    "MemberSpouseLink",
    "MemberStatus",
    "MembershipType",
    "Notification",
    "NotificationType",
    "Post",
    "PostLike",
    "PostVisibility",
    "StoredFile",
    "User",
]
