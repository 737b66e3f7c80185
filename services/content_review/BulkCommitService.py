from services.content_review.AutosaveScheduler import AutosaveScheduler
from services.content_review.CommitService import CommitService
from services.content_review.confirm.ConfirmInterface import ConfirmInterface, ConfirmRequest
from services.content_review.errors import ConfirmationDeclinedError
from shared.helper.HelperConfig import HelperConfig
from shared.models.draft import DraftStatus
from shared.models.review import BulkCommitSummary
from shared.store.DraftStoreInterface import DraftStoreInterface

PRE_COMMIT_SAVE_LABEL = "Pre-commit save"

COMMIT_ALL_REQUEST = ConfirmRequest(
    title="Commit reviewed drafts?",
    body="Only drafts marked as reviewed will be committed.",
    ok_label="Commit all",
)


class BulkCommitService:
    """Commits every reviewed draft of a batch, one after another.

    A failing draft is counted and skipped; it never stops the batch. The
    summary carries counts only.
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        commit_service: CommitService,
        store: DraftStoreInterface,
        confirm: ConfirmInterface,
        autosave: AutosaveScheduler | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._commit_service = commit_service
        self._store = store
        self._confirm = confirm
        self._autosave = autosave

    async def do_commit_all(self, batch_id: str, confirm: ConfirmInterface | None = None) -> BulkCommitSummary:
        """Commit all reviewed drafts of a batch.

        Args:
            batch_id (str): The batch to commit.
            confirm (ConfirmInterface | None): Confirmation collaborator for this call.

        Returns:
            BulkCommitSummary: Success and failure counts.

        Raises:
            ConfirmationDeclinedError: If the operator did not confirm.
        """
        drafts = await self._store.get_drafts_by_batch(batch_id)
        if not any(d.status == DraftStatus.REVIEWED for d in drafts):
            self.logging.info("Batch %s has no reviewed drafts to commit.", batch_id)
            return BulkCommitSummary()

        if not await (confirm or self._confirm).confirm(COMMIT_ALL_REQUEST):
            raise ConfirmationDeclinedError("Commit all")

        if self._autosave is not None and self._autosave.is_dirty():
            await self._autosave.save_now(PRE_COMMIT_SAVE_LABEL)
            drafts = await self._store.get_drafts_by_batch(batch_id)

        reviewed = [d for d in drafts if d.status == DraftStatus.REVIEWED]
        self.logging.info("Committing %d reviewed draft(s) of batch %s...", len(reviewed), batch_id)

        summary = BulkCommitSummary()
        for draft in reviewed:
            try:
                committed = await self._commit_service.do_commit(draft)
            except Exception as e:
                summary.failed_count += 1
                self.logging.warning("Draft %s failed to commit: %s", draft.id, e)
                continue
            summary.success_count += 1
            open_draft = self._autosave.get_draft() if self._autosave else None
            if open_draft is not None and open_draft.id == committed.id:
                self._autosave.replace(committed)

        self.logging.info(
            "Bulk commit of batch %s finished: %d committed, %d failed.",
            batch_id, summary.success_count, summary.failed_count,
            color="green" if summary.failed_count == 0 else "yellow",
        )
        return summary
