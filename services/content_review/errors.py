"""Error taxonomy of the review pipeline.

Every error raised by the review services derives from ReviewError so the
outer boundaries (CommitService.commit, the bulk orchestrator, the HTTP
layer) can convert them into operator-facing messages.
"""


class ReviewError(Exception):
    """Base class for review pipeline errors."""


class DraftNotFoundError(ReviewError):
    pass


class DraftValidationError(ReviewError):
    """Local pre-flight failure. No network call has been made."""


class DraftFinalizedError(ReviewError):
    """A mutation was attempted on a committed or discarded draft."""

    def __init__(self, draft_id: str, status: str):
        super().__init__(f"Draft {draft_id} is {status} and can no longer be edited.")
        self.draft_id = draft_id
        self.status = status


class InvalidTransitionError(ReviewError):
    def __init__(self, draft_id: str, current: str, target: str):
        super().__init__(f"Draft {draft_id} cannot move from {current} to {target}.")
        self.draft_id = draft_id
        self.current = current
        self.target = target


class ConfirmationDeclinedError(ReviewError):
    def __init__(self, action: str):
        super().__init__(f"{action} was not confirmed.")
        self.action = action


class RewriteBusyError(ReviewError):
    def __init__(self, draft_id: str):
        super().__init__(f"An AI rewrite is already running for draft {draft_id}.")
        self.draft_id = draft_id


class RewriteConsentError(ReviewError):
    def __init__(self):
        super().__init__("AI processing was not allowed. Content is only sent to the rewrite model after consent.")


class RewriteEmptyError(ReviewError):
    def __init__(self):
        super().__init__("AI returned no content.")


class RewriteNoChangeError(ReviewError):
    def __init__(self):
        super().__init__("No changes returned.")


class CommitError(ReviewError):
    """A commit step failed. stage names the step that failed."""

    stage = "upload"

    def __init__(self, message: str, stage: str | None = None):
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class UploadFailedError(CommitError):
    stage = "upload"


class CommitBusyError(CommitError):
    stage = "busy"

    def __init__(self, draft_id: str):
        super().__init__(f"A commit is already running for draft {draft_id}.")
        self.draft_id = draft_id


class MediaIdNotReturnedError(CommitError):
    """The upload went through but no identifier came back, so the remote record may be orphaned."""

    stage = "media_id"

    def __init__(self):
        super().__init__("Media ID not returned from server.")


class CommitFollowUpError(CommitError):
    """The upload succeeded remotely but the field update or metadata patch failed."""

    def __init__(self, media_id: str, stage: str, cause: Exception):
        super().__init__(
            f"Upload succeeded as media {media_id}, but the {stage} step failed: {cause}",
            stage=stage,
        )
        self.media_id = media_id
        self.cause = cause


class RewriteFailedError(ReviewError):
    """The rewrite request to the AI backend failed."""
