"""FastAPI application entry point for the draft review bridge."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from server.routers.DraftRouter import router as draft_router
from services.content_review.confirm.ConfirmStatic import ConfirmStatic
from services.content_review.errors import (
    ConfirmationDeclinedError,
    DraftFinalizedError,
    DraftNotFoundError,
    DraftValidationError,
    InvalidTransitionError,
    ReviewError,
    RewriteBusyError,
    RewriteConsentError,
    RewriteEmptyError,
    RewriteFailedError,
    RewriteNoChangeError,
)
from services.content_review.wiring import build_review_service
from shared.clients.ClientInterface import ClientInterface
from shared.clients.content.ContentClientManager import ContentClientManager
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.review import ReviewSettings
from shared.store.DraftStoreManager import DraftStoreManager

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")

ERROR_STATUS: list[tuple[type[ReviewError], int]] = [
    (DraftNotFoundError, 404),
    (DraftFinalizedError, 409),
    (InvalidTransitionError, 409),
    (ConfirmationDeclinedError, 409),
    (RewriteConsentError, 409),
    (RewriteBusyError, 409),
    (DraftValidationError, 422),
    (RewriteEmptyError, 422),
    (RewriteNoChangeError, 422),
    (RewriteFailedError, 502),
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)
    settings = ReviewSettings.from_config(app.state.helper_config)

    store = DraftStoreManager(helper_config=app.state.helper_config, settings=settings).get_store()
    await store.load_settings()
    purged = await store.purge_expired()
    if purged:
        logging.info("Removed %d expired draft(s) on startup.", purged)

    content_client = ContentClientManager(helper_config=app.state.helper_config).get_client()
    llm_client = LLMClientManager(helper_config=app.state.helper_config).get_client()

    # tests hand in an httpx.MockTransport here
    transport = getattr(app.state, "client_transport", None)

    logging.info("Booting all clients...")
    for client in [content_client, llm_client]:
        await client.boot(transport=transport)
    logging.info("All clients booted successfully.")

    app.state.settings = settings
    app.state.draft_store = store
    app.state.content_client = content_client
    app.state.llm_client = llm_client
    app.state.review_service = build_review_service(
        helper_config=app.state.helper_config,
        settings=settings,
        store=store,
        content_client=content_client,
        llm_client=llm_client,
        confirm=ConfirmStatic(answer=False),
    )

    await check_connections([content_client, llm_client])

    # while the app is running...
    yield

    # when the app shuts down, persist pending edits and close all client connections
    logging.info("Shutting down, flushing the open draft and closing all clients...")
    await app.state.review_service.flush()
    for client in [content_client, llm_client]:
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="draft_review_bridge",
    description=(
        "Local-first review of ingested content drafts. Drafts are edited, optionally "
        "rewritten by an AI model and then committed to a remote content store "
        "one at a time or per batch."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(draft_router)


@app.exception_handler(ReviewError)
async def review_error_handler(request: Request, exc: ReviewError) -> JSONResponse:
    """Turn review errors into 4xx responses carrying the operator-facing message."""
    status_code = next((code for error_type, code in ERROR_STATUS if isinstance(exc, error_type)), 400)
    return JSONResponse(status_code=status_code, content={"detail": str(exc), "error": type(exc).__name__})


async def check_connections(clients: list[ClientInterface]) -> None:
    """Check connectivity to the content server and the AI backend on startup.

    Failures are non-fatal: drafts are local, so reviewing keeps working and
    only commits or AI rewrites will fail until the backend is reachable.
    """
    for client in clients:
        try:
            await client.do_healthcheck()
        except Exception as e:
            logging.warning(
                "%s client '%s' is not reachable (%s). Related actions will fail.",
                client.get_client_type(),
                client.get_engine_name(),
                e,
            )


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting draft_review_bridge API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
