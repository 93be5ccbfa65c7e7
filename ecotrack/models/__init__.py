from ecotrack.models.user import User
from ecotrack.models.post import Post, PostLike, PostComment
from ecotrack.models.action import Action
from ecotrack.models.event import Event, EventParticipant

__all__ = [
    "User",
    "Post",
    "PostLike",
    "PostComment",
    "Action",
    "Event",
    "EventParticipant",
]
