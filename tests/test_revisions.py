import pytest

from services.content_review.errors import DraftFinalizedError, InvalidTransitionError
from services.content_review.revisions import MAX_REVISIONS, record_revision
from services.content_review.states import can_transition, check_transition
from shared.models.draft import ContentFormat, DraftStatus


def test_history_keeps_newest_ten_in_order(make_draft):
    draft = make_draft(content="v0")

    for i in range(1, 12):
        draft = record_revision(draft, f"v{i}", label=f"Save {i}")

    assert len(draft.revisions) == MAX_REVISIONS
    assert [r.content for r in draft.revisions] == [f"v{i}" for i in range(11, 1, -1)]
    assert draft.revisions[0].change_description == "Save 11"
    assert draft.content == "v11"


def test_unlabeled_change_does_not_grow_history(make_draft):
    draft = make_draft(content="original")

    updated = record_revision(draft, "edited")

    assert updated.content == "edited"
    assert updated.revisions == []
    assert updated.updated_at >= draft.updated_at


def test_content_equal_to_original_is_not_recorded(make_draft):
    draft = make_draft(content="original")

    updated = record_revision(draft, "original", label="Manual save")

    assert updated.revisions == []


def test_revision_snapshots_title_and_keywords(make_draft):
    draft = make_draft(content="original", keywords=["a", "b"])

    updated = record_revision(draft, "changed", label="AI corrections", extras={"content_format": ContentFormat.MARKDOWN})

    assert updated.content_format == ContentFormat.MARKDOWN
    assert updated.revisions[0].metadata == {"title": "Meeting notes", "keywords": ["a", "b"]}
    assert draft.content == "original"
    assert draft.revisions == []


@pytest.mark.parametrize("status", [DraftStatus.COMMITTED, DraftStatus.DISCARDED])
def test_finalized_drafts_reject_revisions(make_draft, status):
    draft = make_draft(status=status)

    with pytest.raises(DraftFinalizedError):
        record_revision(draft, "edited", label="Manual save")


def test_status_transitions(make_draft):
    assert can_transition(DraftStatus.PENDING, DraftStatus.IN_PROGRESS)
    assert can_transition(DraftStatus.REVIEWED, DraftStatus.REVIEWED)
    assert not can_transition(DraftStatus.PENDING, DraftStatus.REVIEWED)
    assert not can_transition(DraftStatus.DISCARDED, DraftStatus.PENDING)

    with pytest.raises(InvalidTransitionError):
        check_transition(make_draft(status=DraftStatus.PENDING), DraftStatus.REVIEWED)

    # committed is reserved for the commit pipeline
    with pytest.raises(InvalidTransitionError):
        check_transition(make_draft(status=DraftStatus.REVIEWED), DraftStatus.COMMITTED)
    check_transition(make_draft(status=DraftStatus.REVIEWED), DraftStatus.COMMITTED, via_commit=True)

    with pytest.raises(DraftFinalizedError):
        check_transition(make_draft(status=DraftStatus.COMMITTED), DraftStatus.DISCARDED)
