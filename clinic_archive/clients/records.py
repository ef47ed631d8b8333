"""
Record-fetch collaborator
Reads "all records visible to the actor" pages used as ground truth on refresh
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog

from clinic_archive.clients.rpc import RpcTransport
from clinic_archive.core.exceptions import RemoteRejectedError, TransportError
from clinic_archive.models import Actor, ItemType

logger = structlog.get_logger()


@dataclass
class RecordPage:
    """One page of records; total_count is None when the backend omits it"""
    items: List[Dict[str, Any]] = field(default_factory=list)
    total_count: Optional[int] = None
    has_more: bool = False


class RecordSource(ABC):
    @abstractmethod
    async def fetch_page(self, actor: Actor, item_type: ItemType, offset: int, limit: int) -> RecordPage:
        """
        Fetch one page of records for actor.

        Raises:
            RemoteRejectedError: backend answered without success
            TransportError: network failure
        """
        pass


class RpcRecordSource(RecordSource):
    """
    Record source backed by a role-aware listing procedure.

    Accepts both the current response shape
    ``{success, data: {items, pagination: {totalCount, hasMore}}}`` and the
    older ``{success, data: {<items_key>, total_count, has_more}}``.
    """

    def __init__(
        self,
        transport: RpcTransport,
        function: str,
        items_key: str = "items",
        extra_params: Optional[Dict[str, Any]] = None,
    ):
        self.transport = transport
        self.function = function
        self.items_key = items_key
        self.extra_params = dict(extra_params or {})

    async def fetch_page(self, actor: Actor, item_type: ItemType, offset: int, limit: int) -> RecordPage:
        params = {**self.extra_params, "p_limit": limit, "p_offset": offset}
        payload = await self.transport.call(self.function, params)

        if not isinstance(payload, dict) or payload.get("success") is not True:
            error = payload.get("error") if isinstance(payload, dict) else None
            raise RemoteRejectedError(error or f"Failed to fetch {ItemType(item_type).value} records")

        page = self.parse_page(payload.get("data") or {})
        logger.debug(
            "Fetched record page",
            function=self.function,
            item_type=ItemType(item_type).value,
            offset=offset,
            returned=len(page.items),
            total_count=page.total_count,
        )
        return page

    def parse_page(self, data: Any) -> RecordPage:
        if isinstance(data, list):
            return RecordPage(items=data, total_count=None, has_more=False)
        if not isinstance(data, dict):
            raise TransportError(f"Malformed record page from '{self.function}'")

        items = data.get("items")
        if items is None:
            items = data.get(self.items_key) or []

        pagination = data.get("pagination") or {}
        total = pagination.get("totalCount", data.get("total_count"))
        has_more = pagination.get("hasMore", data.get("has_more", False))
        return RecordPage(
            items=list(items),
            total_count=int(total) if total is not None else None,
            has_more=bool(has_more),
        )
