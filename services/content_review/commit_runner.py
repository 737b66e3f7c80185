"""Commit runner entry point.

Commits every reviewed draft of a batch to the remote content store and
prints the summary. Without --yes the bulk commit confirmation is declined
and nothing is sent.

Usage:
    python -m services.content_review.commit_runner <batch_id> [--yes]
"""

import argparse
import asyncio
import sys

from services.content_review.BulkCommitService import BulkCommitService
from services.content_review.CommitService import CommitService
from services.content_review.confirm.ConfirmStatic import ConfirmStatic
from services.content_review.errors import ConfirmationDeclinedError
from shared.clients.content.ContentClientManager import ContentClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.review import BulkCommitSummary, ReviewSettings
from shared.store.DraftStoreManager import DraftStoreManager


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Commit all reviewed drafts of a batch.")
    parser.add_argument("batch_id", help="Id of the draft batch to commit.")
    parser.add_argument("--yes", action="store_true", help="Confirm the bulk commit without asking.")
    parser.add_argument("--purge-expired", action="store_true", help="Delete expired drafts before committing.")
    return parser


async def main(argv: list[str] | None = None) -> int:
    """Run the bulk commit. Returns the process exit code."""
    args = _build_parser().parse_args(argv)
    logger = setup_logging()
    config = HelperConfig(logger=logger)
    settings = ReviewSettings.from_config(config)
    store = DraftStoreManager(helper_config=config, settings=settings).get_store()
    content_client = ContentClientManager(helper_config=config).get_client()

    try:
        await store.load_settings()
        if args.purge_expired:
            await store.purge_expired()

        if await store.get_batch(args.batch_id) is None:
            logger.error("Batch %s not found in the %s draft store.", args.batch_id, store.get_engine_name())
            return 2

        try:
            await content_client.boot()
            await content_client.do_healthcheck()
        except Exception as e:
            logger.error("Error booting content client %s: %s. Aborting.", content_client.get_engine_name(), e)
            return 1

        bulk = BulkCommitService(
            helper_config=config,
            commit_service=CommitService(helper_config=config, content_client=content_client, store=store),
            store=store,
            confirm=ConfirmStatic(answer=args.yes),
        )
        try:
            summary: BulkCommitSummary = await bulk.do_commit_all(args.batch_id)
        except ConfirmationDeclinedError:
            logger.warning("Bulk commit not confirmed. Re-run with --yes to commit.")
            return 1

        print(f"{summary.success_count} committed, {summary.failed_count} failed")
        return 0 if summary.failed_count == 0 else 1
    finally:
        await content_client.close()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
