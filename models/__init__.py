from models.base import Base
from models.user import User
from models.event import Event
from models.invite import Invite, InviteStatus
from models.submission import Submission

__all__ = ["Base", "User", "Event", "Invite", "InviteStatus", "Submission"]
