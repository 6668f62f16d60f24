"""Social graph relationship engine."""

from .blocks import (
    BlockState,
    block_account,
    get_block_state,
    is_blocked_pair,
    list_blocked_accounts,
    unblock_account,
)
from .errors import (
    BlockedError,
    DuplicateError,
    ForbiddenError,
    GraphError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from .lifecycle import (
    SubmitResult,
    accept_request,
    are_friends,
    cancel_request,
    reject_request,
    remove_follower,
    submit_follow,
    submit_friend,
    submit_request,
    unfollow,
    unfriend,
)
from .privacy import BulkAcceptResult, decide, on_privacy_changed, set_account_privacy
from .projector import ReconcileResult, apply_accepted, apply_removed, get_membership, reconcile
from .queries import (
    RelationshipStatus,
    count_incoming_requests,
    get_status,
    list_followers,
    list_following,
    list_friends,
    list_incoming_requests,
    list_outgoing_requests,
)

__all__ = [
    "BlockState",
    "BlockedError",
    "BulkAcceptResult",
    "DuplicateError",
    "ForbiddenError",
    "GraphError",
    "InvalidStateError",
    "NotFoundError",
    "ReconcileResult",
    "RelationshipStatus",
    "SubmitResult",
    "ValidationError",
    "accept_request",
    "apply_accepted",
    "apply_removed",
    "are_friends",
    "block_account",
    "cancel_request",
    "count_incoming_requests",
    "decide",
    "get_block_state",
    "get_membership",
    "get_status",
    "is_blocked_pair",
    "list_blocked_accounts",
    "list_followers",
    "list_following",
    "list_friends",
    "list_incoming_requests",
    "list_outgoing_requests",
    "on_privacy_changed",
    "reconcile",
    "reject_request",
    "remove_follower",
    "set_account_privacy",
    "submit_follow",
    "submit_friend",
    "submit_request",
    "unblock_account",
    "unfollow",
    "unfriend",
]
