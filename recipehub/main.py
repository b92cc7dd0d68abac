from __future__ import annotations

from fastapi import Depends, FastAPI

from recipehub import __version__
from recipehub.api.deps import get_follower_notifier_dependency
from recipehub.core.lifespan import lifespan
from recipehub.notifications.service import FollowerNotifier

app = FastAPI(title="RecipeHub push", lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)


@app.get("/health", include_in_schema=False)
async def health_check(notifier: FollowerNotifier = Depends(get_follower_notifier_dependency)) -> dict[str, object]:
  """Return a simple health status with the push fan-out state."""
  return {"status": "ok", "version": __version__, "push_enabled": notifier.enabled}
