import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from recipehub.core.database import dispose_db_engine
from recipehub.core.logging import initialize_logging
from recipehub.notifications.factory import get_follower_notifier
from recipehub.notifications.service import drain_background_tasks

SHUTDOWN_DRAIN_SECONDS = 15.0


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging and the follower notifier, then drain pushes on shutdown."""
  from recipehub.config import get_settings

  settings = get_settings()
  logger = logging.getLogger("recipehub.core.lifespan")

  initialize_logging(settings)
  notifier = get_follower_notifier()
  app.state.follower_notifier = notifier
  if notifier.enabled:
    logger.info("Follower push notifications enabled project_id=%s", settings.firebase_project_id)
  else:
    # Rounds still run and log their own skip reason; this is only a startup hint.
    logger.warning("Follower push notifications disabled; database or Firebase service account not configured.")

  yield

  # Give in-flight fan-out rounds a bounded window before the process exits.
  still_running = await drain_background_tasks(timeout_seconds=SHUTDOWN_DRAIN_SECONDS)
  if still_running:
    logger.warning("Shutting down with %d follower push rounds still running.", still_running)
  await dispose_db_engine()
