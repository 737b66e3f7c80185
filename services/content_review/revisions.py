import uuid
from datetime import datetime
from typing import Any

from services.content_review.errors import DraftFinalizedError
from shared.models.draft import ContentDraft, DraftRevision, utc_now

MAX_REVISIONS = 10


def record_revision(
    draft: ContentDraft,
    next_content: str,
    label: str | None = None,
    extras: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> ContentDraft:
    """Return a copy of the draft carrying next_content.

    A revision is prepended only when a label is given and next_content
    differs from the original content. The history keeps the newest
    MAX_REVISIONS entries.

    Args:
        draft (ContentDraft): The draft to update. It is not modified.
        next_content (str): The new content.
        label (str | None): Change description. Unlabeled changes never grow the history.
        extras (dict[str, Any] | None): Further field updates applied together with the content
            (e.g. {"content_format": ContentFormat.MARKDOWN}).
        now (datetime | None): Timestamp to use, defaults to the current UTC time.

    Raises:
        DraftFinalizedError: If the draft is committed or discarded.
    """
    if draft.is_finalized():
        raise DraftFinalizedError(draft.id, draft.status.value)

    now = now or utc_now()
    updates: dict[str, Any] = {"content": next_content, "updated_at": now}
    if extras:
        updates.update(extras)

    if label and next_content != draft.original_content:
        revision = DraftRevision(
            id=uuid.uuid4().hex,
            content=next_content,
            metadata={"title": draft.title, "keywords": list(draft.keywords)},
            timestamp=now,
            change_description=label,
        )
        updates["revisions"] = [revision, *draft.revisions][:MAX_REVISIONS]

    return draft.model_copy(update=updates, deep=True)
