from services.content_review.AutosaveScheduler import AutosaveScheduler
from services.content_review.BulkCommitService import BulkCommitService
from services.content_review.CommitService import CommitService
from services.content_review.ReviewService import ReviewService
from services.content_review.RewriteService import RewriteService
from services.content_review.confirm.ConfirmInterface import ConfirmInterface
from shared.clients.content.ContentClientInterface import ContentClientInterface
from shared.clients.llm.LLMClientInterface import LLMClientInterface
from shared.helper.HelperConfig import HelperConfig
from shared.models.review import ReviewSettings
from shared.store.DraftStoreInterface import DraftStoreInterface


def build_review_service(
    helper_config: HelperConfig,
    settings: ReviewSettings,
    store: DraftStoreInterface,
    content_client: ContentClientInterface,
    llm_client: LLMClientInterface,
    confirm: ConfirmInterface,
) -> ReviewService:
    """Wire a review session from booted clients and a loaded store."""
    autosave = AutosaveScheduler(helper_config=helper_config, store=store, delay_ms=settings.autosave_delay_ms)
    commit_service = CommitService(helper_config=helper_config, content_client=content_client, store=store)
    return ReviewService(
        helper_config=helper_config,
        settings=settings,
        store=store,
        autosave=autosave,
        rewrite_service=RewriteService(
            helper_config=helper_config,
            llm_client=llm_client,
            confirm=confirm,
            settings=settings,
            store=store,
        ),
        commit_service=commit_service,
        bulk_commit_service=BulkCommitService(
            helper_config=helper_config,
            commit_service=commit_service,
            store=store,
            confirm=confirm,
            autosave=autosave,
        ),
        confirm=confirm,
    )
