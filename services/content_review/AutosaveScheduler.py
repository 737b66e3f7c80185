import asyncio

from services.content_review.revisions import record_revision
from shared.helper.HelperConfig import HelperConfig
from shared.models.draft import ContentDraft, utc_now
from shared.store.DraftStoreInterface import DraftStoreInterface


class AutosaveScheduler:
    """Debounced local persistence of the open draft.

    Every mark_dirty() (re)starts a single idle timer; when it fires, the
    draft is written to the store. Further edits while waiting restart the
    timer. save_now() bypasses the timer.

    open() switches the open draft. With flush=True (default) pending edits
    of the previous draft are written first; flush=False drops them, which
    is the behaviour of the browser review page.
    """

    def __init__(self, helper_config: HelperConfig, store: DraftStoreInterface, delay_ms: int) -> None:
        self.logging = helper_config.get_logger()
        self._store = store
        self._delay = max(0, delay_ms) / 1000
        self._draft: ContentDraft | None = None
        self._dirty = False
        self._version = 0
        self._task: asyncio.Task | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_draft(self) -> ContentDraft | None:
        return self._draft

    def is_dirty(self) -> bool:
        return self._dirty

    def has_pending_timer(self) -> bool:
        return self._task is not None and not self._task.done()

    ##########################################
    ################ CONTROL #################
    ##########################################

    async def open(self, draft: ContentDraft | None, flush: bool = True) -> None:
        """Make draft the open draft, cancelling the previous draft's timer."""
        if flush:
            await self.flush()
        self.cancel()
        self._draft = draft
        self._dirty = False
        self._version += 1

    def replace(self, draft: ContentDraft) -> None:
        """Swap in a draft that was just persisted elsewhere. Clears dirty state."""
        self.cancel()
        self._draft = draft
        self._dirty = False
        self._version += 1

    def mark_dirty(self, draft: ContentDraft) -> None:
        """Record an in-memory edit of the open draft and restart the idle timer."""
        self._draft = draft
        self._dirty = True
        self._version += 1
        self.cancel()
        self._task = asyncio.create_task(self._run_timer())

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def flush(self) -> ContentDraft | None:
        """Persist pending edits now, if any."""
        if not self._dirty:
            return self._draft
        return await self.save_now()

    async def save_now(self, label: str | None = None) -> ContentDraft | None:
        """Persist the open draft immediately.

        Args:
            label (str | None): Revision label. A revision is only recorded when
                the content differs from the original.

        Returns:
            ContentDraft | None: The stored draft.
        """
        self.cancel()
        return await self._persist(label)

    ##########################################
    ############### INTERNALS ################
    ##########################################

    async def _run_timer(self) -> None:
        await asyncio.sleep(self._delay)
        # detach before writing so a new edit does not cancel the write in flight
        self._task = None
        try:
            await self._persist()
        except Exception as e:
            self.logging.error("Autosave of draft %s failed: %s", self._draft.id if self._draft else None, e)

    async def _persist(self, label: str | None = None) -> ContentDraft | None:
        draft = self._draft
        if draft is None:
            return None
        if draft.is_finalized():
            self._dirty = False
            return draft

        version = self._version
        updated = record_revision(draft, draft.content, label, now=utc_now())
        stored = await self._store.put_draft(updated)
        if version == self._version:
            self._draft = stored
            self._dirty = False
        self.logging.debug("Saved draft %s%s.", stored.id, f" ({label})" if label else "")
        return stored
