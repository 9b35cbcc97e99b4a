import logging

from models.invite import Invite, InviteStatus
from utils.exceptions import InvalidTransition

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    InviteStatus.CREATED: {InviteStatus.SENT, InviteStatus.VIEWED, InviteStatus.SIGNED},
    InviteStatus.SENT: {InviteStatus.VIEWED, InviteStatus.SIGNED},
    InviteStatus.VIEWED: {InviteStatus.SIGNED},
    InviteStatus.SIGNED: {InviteStatus.SIGNED, InviteStatus.RETURNED},
    InviteStatus.RETURNED: {InviteStatus.RETURNED},
}


def can_transition(current: InviteStatus, target: InviteStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def transition(invite: Invite, target: InviteStatus) -> bool:
    """Moves the invite to `target`. Returns whether the stored status changed."""
    current = invite.status or InviteStatus.CREATED
    if not can_transition(current, target):
        raise InvalidTransition(f"Cannot move invite from {current.value} to {target.value}")
    if current == target:
        return False
    invite.status = target
    logger.info("Invite %s: %s -> %s", invite.id, current.value, target.value)
    return True


def mark_viewed(invite: Invite) -> bool:
    """First public view only; never moves an invite backwards."""
    if invite.status in (InviteStatus.CREATED, InviteStatus.SENT):
        return transition(invite, InviteStatus.VIEWED)
    return False


def mark_signed(invite: Invite) -> bool:
    # Re-signing is allowed, but nothing leaves RETURNED
    if invite.status == InviteStatus.RETURNED:
        return False
    return transition(invite, InviteStatus.SIGNED)


def mark_returned(invite: Invite) -> bool:
    return transition(invite, InviteStatus.RETURNED)
