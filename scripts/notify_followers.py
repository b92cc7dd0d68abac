"""Run one follower push round for an existing recipe (manual re-send or smoke test)."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from recipehub.config import get_settings
from recipehub.core.logging import initialize_logging
from recipehub.notifications.contracts import NewRecipeNotification
from recipehub.notifications.factory import get_follower_notifier

logger = logging.getLogger("scripts.notify_followers")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
  parser = argparse.ArgumentParser(description="Send the new-recipe push to every follower of an author.")
  parser.add_argument("--author-id", required=True, help="Id of the user who published the recipe.")
  parser.add_argument("--author-name", required=True, help="Display name used in the notification title.")
  parser.add_argument("--recipe-id", required=True, help="Id of the published recipe.")
  parser.add_argument("--recipe-title", required=True, help="Recipe title used as the notification body.")
  return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
  notifier = get_follower_notifier()
  if not notifier.enabled:
    logger.error("Push fan-out is not configured; set RECIPEHUB_PG_DSN and the FIREBASE_* service account.")
    return 1

  notification = NewRecipeNotification(author_id=args.author_id, author_name=args.author_name, recipe_id=args.recipe_id, recipe_title=args.recipe_title)
  await notifier.notify_followers_new_recipe(notification)
  return 0


def main(argv: list[str] | None = None) -> int:
  args = _parse_args(argv)
  initialize_logging(get_settings())
  return asyncio.run(_run(args))


if __name__ == "__main__":
  sys.exit(main())
