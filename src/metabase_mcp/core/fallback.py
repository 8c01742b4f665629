"""Ordered endpoint fallback for version-dependent Metabase APIs.

Some Metabase endpoints changed shape across releases (dashboard cards moved
from ``/cards`` to ``/dashcard``, bulk writes replaced single-card writes).
Handlers for those operations declare an ordered list of attempts, preferred
shape first; the executor tries them in turn and returns the first success.

Example::

    attempts = (
        FallbackAttempt("DELETE", "/api/dashboard/{dashboard_id}/cards/{dashcard_id}"),
        FallbackAttempt("DELETE", "/api/dashboard/{dashboard_id}/dashcard/{dashcard_id}"),
    )
    await FallbackExecutor(client).execute(attempts, {"dashboard_id": 1, "dashcard_id": 7})

Earlier attempts are not rolled back. Every attempt must be safe to follow
with a different shape; read-modify-write attempts are not atomic with
respect to concurrent edits of the same parent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Sequence, cast

import httpx

from metabase_mcp.core.client import MetabaseClient
from metabase_mcp.core.errors import ConfigurationError

logger = logging.getLogger(__name__)

PayloadBuilder = Callable[[Mapping[str, Any]], Any]
Transform = Callable[[Any, Mapping[str, Any]], Any]


@dataclass(frozen=True)
class FallbackAttempt:
    """One request shape: method, path template and a pure payload builder.

    ``path_template`` is formatted with the call parameters, e.g.
    ``"/api/dashboard/{dashboard_id}/cards"``.
    """

    method: str
    path_template: str
    payload_builder: Optional[PayloadBuilder] = None
    label: str = ""

    def render_path(self, params: Mapping[str, Any]) -> str:
        return self.path_template.format(**params)

    def build_payload(self, params: Mapping[str, Any]) -> Any:
        if self.payload_builder is None:
            return None
        return self.payload_builder(params)

    def describe(self) -> str:
        return self.label or f"{self.method} {self.path_template}"

    async def run(self, client: MetabaseClient, params: Mapping[str, Any]) -> Any:
        return await client.request(
            self.method,
            self.render_path(params),
            json=self.build_payload(params),
        )


@dataclass(frozen=True)
class ReadModifyWriteAttempt(FallbackAttempt):
    """Read the parent's current state, transform it locally, write it back.

    ``transform(current_state, params)`` must be pure; it returns the full
    request body for the write.
    """

    read_path_template: str = ""
    transform: Optional[Transform] = None

    def __post_init__(self) -> None:
        if not self.read_path_template or self.transform is None:
            raise ConfigurationError(
                f"Read-modify-write attempt '{self.describe()}' needs a read path and a transform"
            )

    def describe(self) -> str:
        return self.label or f"GET {self.read_path_template} then {self.method} {self.path_template}"

    async def run(self, client: MetabaseClient, params: Mapping[str, Any]) -> Any:
        current = await client.get(self.read_path_template.format(**params))
        transform = cast(Transform, self.transform)
        payload = transform(current, params)
        return await client.request(self.method, self.render_path(params), json=payload)


class FallbackExecutor:
    """Runs an ordered attempt list until one succeeds."""

    def __init__(self, client: MetabaseClient) -> None:
        self._client = client

    async def execute(self, attempts: Sequence[FallbackAttempt], params: Mapping[str, Any]) -> Any:
        """Return the first successful attempt's result.

        Only transport and HTTP failures move on to the next attempt; any
        other exception propagates immediately.

        Raises:
            ConfigurationError: *attempts* is empty.
            httpx.HTTPError: every attempt failed; this is the last attempt's error.
        """
        if not attempts:
            raise ConfigurationError("Fallback chain requires at least one attempt")

        total = len(attempts)
        last_error: Optional[httpx.HTTPError] = None
        for index, attempt in enumerate(attempts, start=1):
            try:
                result = await attempt.run(self._client, params)
            except httpx.HTTPError as exc:
                last_error = exc
                logger.debug(
                    "Fallback attempt %d/%d (%s) failed: %s",
                    index,
                    total,
                    attempt.describe(),
                    exc.__class__.__name__,
                )
                continue
            if index > 1:
                logger.info("Fallback attempt %d/%d (%s) succeeded", index, total, attempt.describe())
            return result

        logger.warning("All %d fallback attempts failed", total)
        raise cast(httpx.HTTPError, last_error)


# ---------------------------------------------------------------------------
# Pure collection helpers for read-modify-write attempts
# ---------------------------------------------------------------------------


def _same_id(left: Any, right: Any) -> bool:
    return left == right or str(left) == str(right)


def extract_dashcards(dashboard: Any) -> List[dict]:
    """Return a dashboard's cards; newer servers use ``dashcards``, older ``cards``."""
    if not isinstance(dashboard, dict):
        return []
    for key in ("dashcards", "cards"):
        cards = dashboard.get(key)
        if isinstance(cards, list):
            return list(cards)
    return []


def append_item(items: Sequence[dict], item: dict) -> List[dict]:
    return [*items, item]


def remove_item(items: Sequence[dict], item_id: Any, *, key: str = "id") -> List[dict]:
    """Drop the element whose *key* equals *item_id*.

    Removing an identity that is not present returns an equal list.
    """
    return [item for item in items if not _same_id(item.get(key), item_id)]


def update_item(
    items: Sequence[dict],
    item_id: Any,
    fields: Mapping[str, Any],
    *,
    key: str = "id",
) -> List[dict]:
    """Merge *fields* into the element whose *key* equals *item_id*."""
    return [
        {**item, **fields} if _same_id(item.get(key), item_id) else item
        for item in items
    ]
