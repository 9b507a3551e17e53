"""Member list use case: cache-first fresh searches and cursor "load more"."""

import logging
from typing import Any, Dict, Optional

import httpx

from pulsadash.domain.models.listing import CacheEntry, MemberFilters
from pulsadash.domain.models.member import Member
from pulsadash.infrastructure.cache.paginated_cache import PaginatedCache
from pulsadash.infrastructure.resilience.api_retry import ApiRequestExecutor
from pulsadash.infrastructure.resilience.cancellation import AbortSignal

logger = logging.getLogger(__name__)

MEMBERS_PATH = "/members"
MEMBER_CACHE_KEY = "memberManagementCache"
DEFAULT_PAGE_SIZE = 10


def build_member_query(
    filters: MemberFilters, page_size: int, cursor: Optional[str] = None
) -> Dict[str, str]:
    """Builds the ``/members`` query string; 'all' and empty filters are omitted."""
    params = {"limit": str(page_size)}
    if filters.search_term:
        params["search"] = filters.search_term
    if filters.status_filter and filters.status_filter != "all":
        params["status"] = filters.status_filter
    if filters.level_filter:
        params["level"] = filters.level_filter
    if filters.verification_filter and filters.verification_filter != "all":
        params["verification"] = filters.verification_filter
    if cursor and cursor.strip():
        params["cursor"] = cursor
    return params


class MemberDirectoryService:
    """Loads member pages through the executor and keeps the member cache current."""

    def __init__(
        self,
        executor: ApiRequestExecutor,
        cache: PaginatedCache[Member],
        page_size: int = DEFAULT_PAGE_SIZE,
    ):
        self.executor = executor
        self.cache = cache
        self.page_size = page_size

    async def load(
        self,
        filters: MemberFilters,
        *,
        session_key: str,
        auth_seed: str,
        load_more: bool = False,
        signal: Optional[AbortSignal] = None,
    ) -> Optional[CacheEntry[Member]]:
        """Returns the member list state for ``filters``.

        A fresh search is served from the cache while it is valid. A load
        more continues from the cached cursor and merges the next page.

        Returns:
            The cached entry after the update, or None if the backend
            rejected the request. A rejected request leaves the cache as is.

        Raises:
            AbortError: If the request is cancelled or times out.
            httpx.TransportError: If the backend stayed unreachable.
        """
        cached = self.cache.read(filters)
        cursor = None
        if load_more:
            if cached is None:
                logger.debug("Nothing cached to continue from, running a fresh search instead.")
                load_more = False
            elif not cached.has_more or not (cached.next_cursor or "").strip():
                logger.debug("Member list is complete, nothing more to load.")
                return cached
            else:
                cursor = cached.next_cursor
        elif cached is not None:
            logger.debug(f"Member cache hit ({len(cached.records)} records).")
            return cached

        ticket = self.cache.next_version(filters)
        response = await self.executor.execute(
            MEMBERS_PATH,
            params=build_member_query(filters, self.page_size, cursor),
            headers={"Session-Key": session_key, "Auth-Seed": auth_seed},
            signal=signal,
        )

        payload = self._parse(response)
        if payload is None:
            return None

        try:
            members = [Member.from_dict(item) for item in payload.get("members") or []]
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Member list contained an unreadable record: {e}")
            return None
        next_cursor = payload.get("next_cursor") or None
        written = self.cache.write(
            filters,
            members,
            total=int(payload.get("total") or 0),
            has_more=bool(payload.get("has_more")),
            next_cursor=next_cursor,
            is_append=load_more,
            version=ticket,
        )
        if not written:
            logger.info("A newer member list arrived first, keeping it.")
        return self.cache.read(filters)

    @staticmethod
    def _parse(response: httpx.Response) -> Optional[Dict[str, Any]]:
        try:
            payload = response.json()
        except ValueError:
            logger.error(f"Member list returned non-JSON body (HTTP {response.status_code})")
            return None
        if not isinstance(payload, dict):
            logger.error(f"Member list returned unexpected payload (HTTP {response.status_code})")
            return None
        if not response.is_success or not payload.get("success"):
            logger.error(
                f"Member list request failed (HTTP {response.status_code}): {payload.get('message', '')}"
            )
            return None
        return payload
