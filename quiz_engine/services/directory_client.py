"""HTTP client for the directory service (singleton).

The directory owns users, courses, lessons and learner notifications.  The
quiz engine only stores their opaque ids and asks the directory for display
data when building grader-facing views.
"""

import logging
from typing import Any

import httpx

from quiz_engine.config import settings
from quiz_engine.services.directory_cache import cache_get, cache_set

logger = logging.getLogger(__name__)


class DirectoryClient:
    """Thin wrapper around the directory service HTTP API."""

    def __init__(
        self,
        base_url: str = settings.DIRECTORY_SERVICE_URL,
        token: str = settings.DIRECTORY_SERVICE_TOKEN,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base = base_url.rstrip("/")
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._http = httpx.Client(
            base_url=self._base,
            headers=headers,
            timeout=settings.DIRECTORY_TIMEOUT_SECONDS,
            transport=transport,
        )

    # ── lookups (cached, degrade to None) ─────────────────────────────────

    def _lookup(self, kind: str, path: str, resource_id: str) -> dict[str, Any] | None:
        cached = cache_get(kind, resource_id)
        if cached is not None:
            return cached
        try:
            r = self._http.get(f"{path}/{resource_id}")
            if r.status_code == 404:
                return None
            r.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Directory lookup %s/%s failed: %s", kind, resource_id, e)
            return None
        result = r.json()
        cache_set(kind, resource_id, result)
        return result

    def resolve_user(self, user_id: str) -> dict[str, Any] | None:
        """Return ``{"name": ..., "email": ...}`` for *user_id*, or None."""
        data = self._lookup("user", "/users", user_id)
        if data is None:
            return None
        return {"name": data.get("name"), "email": data.get("email")}

    def resolve_course(self, course_id: str) -> dict[str, Any] | None:
        return self._lookup("course", "/courses", course_id)

    def resolve_lesson(self, lesson_id: str) -> str | None:
        """Return the lesson title, or None."""
        data = self._lookup("lesson", "/lessons", lesson_id)
        return data.get("title") if data else None

    # ── notifications (errors propagate to the caller) ────────────────────

    def notify(
        self,
        user_id: str,
        message: str,
        link: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        r = self._http.post(
            "/notifications/",
            json={
                "user_id": user_id,
                "message": message,
                "link": link,
                "metadata": metadata or {},
            },
        )
        r.raise_for_status()

    def close(self) -> None:
        self._http.close()


# ── singleton accessor ────────────────────────────────────────────────────────

_instance: DirectoryClient | None = None


def get_directory_client() -> DirectoryClient:
    global _instance
    if _instance is None:
        _instance = DirectoryClient()
        logger.info("Directory client initialised → %s", _instance._base)
    return _instance
