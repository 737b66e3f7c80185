"""Draft status transitions.

pending -> in_progress -> reviewed -> committed
any non-terminal status -> discarded

committed and discarded are terminal. committed is only set by the commit
pipeline, which passes via_commit=True.
"""

from services.content_review.errors import DraftFinalizedError, InvalidTransitionError
from shared.models.draft import ContentDraft, DraftStatus

ALLOWED_TRANSITIONS: dict[DraftStatus, frozenset[DraftStatus]] = {
    DraftStatus.PENDING: frozenset({DraftStatus.IN_PROGRESS, DraftStatus.DISCARDED, DraftStatus.COMMITTED}),
    DraftStatus.IN_PROGRESS: frozenset({DraftStatus.REVIEWED, DraftStatus.DISCARDED, DraftStatus.COMMITTED}),
    DraftStatus.REVIEWED: frozenset({DraftStatus.REVIEWED, DraftStatus.DISCARDED, DraftStatus.COMMITTED}),
    DraftStatus.DISCARDED: frozenset(),
    DraftStatus.COMMITTED: frozenset(),
}


def ensure_editable(draft: ContentDraft) -> None:
    """Raise DraftFinalizedError when the draft is committed or discarded."""
    if draft.is_finalized():
        raise DraftFinalizedError(draft.id, draft.status.value)


def can_transition(current: DraftStatus, target: DraftStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def check_transition(draft: ContentDraft, target: DraftStatus, via_commit: bool = False) -> None:
    """Validate a status change.

    Raises:
        DraftFinalizedError: If the draft is already terminal.
        InvalidTransitionError: If the change is not allowed, or committed is
            requested outside the commit pipeline.
    """
    ensure_editable(draft)
    if target == DraftStatus.COMMITTED and not via_commit:
        raise InvalidTransitionError(draft.id, draft.status.value, target.value)
    if not can_transition(draft.status, target):
        raise InvalidTransitionError(draft.id, draft.status.value, target.value)
