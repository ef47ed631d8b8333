"""
Domain Store
Client-side active/archived view of one item type with optimistic transitions
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Union

import structlog

from clinic_archive.clients.records import RecordSource
from clinic_archive.core.config import settings
from clinic_archive.core.exceptions import LifecycleError
from clinic_archive.models import (
    Action,
    BatchItemResult,
    BatchResult,
    CallOptions,
    ErrorCode,
    ItemType,
    LifecycleResult,
    LifecycleState,
    PaginationState,
)
from clinic_archive.services.gateway import LifecycleGateway
from clinic_archive.services.synchronizer import KeyFunc, Record, merge_page, partition, record_id
from clinic_archive.services.transition import Entry, OrderedCollection, Transition

logger = structlog.get_logger()

EligibilityPredicate = Callable[[Record], bool]


class DomainStore:
    """
    Authoritative client view of active and archived records for one item type.

    Between refreshes the collections change only through optimistic
    transitions that are committed or rolled back by the gateway's answer.
    Every precondition (arguments, permissions, presence, eligibility) is
    checked before anything is mutated. A refresh rebuilds the collections
    from ground truth instead of patching them.

    A store belongs to one session and is not shared.
    """

    def __init__(
        self,
        item_type: ItemType,
        gateway: LifecycleGateway,
        record_source: RecordSource,
        *,
        eligibility: Optional[EligibilityPredicate] = None,
        ineligible_message: Optional[str] = None,
        options: Optional[CallOptions] = None,
        page_limit: Optional[int] = None,
        key: KeyFunc = record_id,
    ):
        self.item_type = ItemType(item_type)
        self.gateway = gateway
        self.record_source = record_source
        self.eligibility = eligibility
        self.ineligible_message = ineligible_message or f"This {self.item_type.value} cannot be archived yet"
        self.options = options or CallOptions()
        self.key = key

        self._active = OrderedCollection()
        self._archived = OrderedCollection()
        self._pagination = PaginationState(limit=page_limit or settings.DEFAULT_PAGE_LIMIT)
        self._hidden: Set[str] = set()
        self._in_flight: Set[str] = set()
        self._archived_at: Dict[str, datetime] = {}
        self._next_seq = 0

        self.logger = logger.bind(item_type=self.item_type.value)

    # ==================== Readers ====================

    @property
    def active(self) -> List[Record]:
        return self._active.records()

    @property
    def archived(self) -> List[Record]:
        return self._archived.records()

    @property
    def pagination(self) -> PaginationState:
        p = self._pagination
        return PaginationState(limit=p.limit, offset=p.offset, total_count=p.total_count, has_more=p.has_more)

    @property
    def has_more(self) -> bool:
        return self._pagination.has_more

    def state_of(self, item_id: Union[str, int]) -> Optional[LifecycleState]:
        """Lifecycle state as currently known, or None for unknown ids"""
        item_id = str(item_id)
        if item_id in self._active:
            return LifecycleState.ACTIVE
        if item_id in self._archived:
            return LifecycleState.ARCHIVED
        if item_id in self._hidden:
            return LifecycleState.HIDDEN
        return None

    def is_provisional(self, item_id: Union[str, int]) -> bool:
        entry = self._archived.get(str(item_id))
        return entry is not None and entry.provisional

    def is_pending(self, item_id: Union[str, int]) -> bool:
        return str(item_id) in self._in_flight

    def stats(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        now = now or datetime.now(timezone.utc)
        week_ago = now - timedelta(days=7)
        archived_at = [self._archived_at[k] for k in self._archived.keys() if k in self._archived_at]
        return {
            "item_type": self.item_type.value,
            "active": len(self._active),
            "archived": len(self._archived),
            "has_archived": len(self._archived) > 0,
            "recent_archives": sum(1 for ts in archived_at if ts > week_ago),
            "this_month": sum(1 for ts in archived_at if (ts.year, ts.month) == (now.year, now.month)),
        }

    # ==================== Mutations ====================

    async def archive(self, item_id: Union[str, int]) -> LifecycleResult:
        return await self._mutate(Action.ARCHIVE, item_id, self._active, self._archived, check_eligibility=True)

    async def unarchive(self, item_id: Union[str, int]) -> LifecycleResult:
        return await self._mutate(Action.UNARCHIVE, item_id, self._archived, self._active)

    async def hide(self, item_id: Union[str, int]) -> LifecycleResult:
        """Permanently hide an archived item; hidden items are never materialized again"""
        return await self._mutate(Action.HIDE, item_id, self._archived, None)

    async def archive_many(self, item_ids: Iterable[Union[str, int]]) -> BatchResult:
        """Archive each id concurrently. Repeated ids are settled once, so total counts distinct ids"""
        return await self._settle(self.archive, item_ids)

    async def unarchive_many(self, item_ids: Iterable[Union[str, int]]) -> BatchResult:
        """Unarchive each id concurrently; repeated ids are settled once"""
        return await self._settle(self.unarchive, item_ids)

    async def _settle(self, operation, item_ids: Iterable[Union[str, int]]) -> BatchResult:
        unique_ids = list(dict.fromkeys(str(i) for i in item_ids))
        results = await asyncio.gather(*(operation(i) for i in unique_ids))
        batch = BatchResult.settle([BatchItemResult(i, r) for i, r in zip(unique_ids, results)])
        self.logger.info(
            "Batch settled",
            total=batch.total,
            successful=batch.successful,
            failed=batch.failed,
        )
        return batch

    def _precheck(
        self,
        action: Action,
        item_id: str,
        source: OrderedCollection,
        check_eligibility: bool,
    ) -> Optional[LifecycleResult]:
        if not item_id:
            return LifecycleResult.fail(ErrorCode.INVALID_ARGUMENT, "Item ID is required")
        try:
            self.gateway.authorize(action, self.item_type, self.options)
        except LifecycleError as e:
            return LifecycleResult.fail(e.code, e.message)
        if item_id in self._in_flight:
            return LifecycleResult.fail(
                ErrorCode.INVALID_STATE,
                f"An operation on {self.item_type.value} '{item_id}' is already in progress",
            )
        entry = source.get(item_id)
        if entry is None:
            return LifecycleResult.fail(
                ErrorCode.NOT_FOUND,
                f"{self.item_type.value} '{item_id}' is not in the expected list; refresh and try again",
            )
        if check_eligibility and self.eligibility is not None and not self.eligibility(entry.record):
            return LifecycleResult.fail(ErrorCode.INVALID_STATE, self.ineligible_message)
        return None

    async def _mutate(
        self,
        action: Action,
        item_id: Union[str, int],
        source: OrderedCollection,
        destination: Optional[OrderedCollection],
        check_eligibility: bool = False,
    ) -> LifecycleResult:
        item_id = str(item_id).strip() if item_id is not None else ""
        rejected = self._precheck(action, item_id, source, check_eligibility)
        if rejected is not None:
            self.logger.info("Transition rejected", action=action.value, item_id=item_id, error=rejected.error.value)
            return rejected

        transition = Transition(item_id, source, destination)
        transition.apply()
        self._in_flight.add(item_id)
        try:
            result = await self.gateway.execute(action, self.item_type, item_id, self.options)
        except BaseException:
            transition.rollback()
            raise
        finally:
            self._in_flight.discard(item_id)

        if not result.success:
            transition.rollback()
            return result

        transition.commit()
        if action == Action.ARCHIVE:
            self._archived_at[item_id] = datetime.now(timezone.utc)
        elif action == Action.UNARCHIVE:
            self._archived_at.pop(item_id, None)
        elif action == Action.HIDE:
            self._archived_at.pop(item_id, None)
            self._hidden.add(item_id)
            # the backend listing no longer holds the row, so later pages shift down by one
            if transition.source is self._archived:
                self._pagination.retract()
        return result

    # ==================== Refresh ====================

    async def refresh(self) -> LifecycleResult:
        """Replace both collections with the first page of ground truth"""
        return await self._load(first_page=True)

    async def load_more(self) -> LifecycleResult:
        """Append the next page, skipping records already held"""
        if not self._pagination.has_more:
            return LifecycleResult.ok(data=[], message="No more records")
        return await self._load(first_page=False)

    async def _load(self, first_page: bool) -> LifecycleResult:
        offset = 0 if first_page else self._pagination.offset
        limit = self._pagination.limit
        try:
            page, archive_records = await asyncio.gather(
                self.record_source.fetch_page(self.gateway.actor, self.item_type, offset, limit),
                self._fetch_archive_records(),
            )
        except LifecycleError as e:
            self.logger.warning("Refresh failed", offset=offset, error=e.message)
            return LifecycleResult.fail(e.code, e.message)

        archived_ids = {r.item_ref.item_id for r in archive_records}
        visible = [r for r in page.items if self.key(r) not in self._hidden]

        if first_page:
            active, archived = OrderedCollection(), OrderedCollection()
            records = merge_page((), visible, self.key)
            self._archived_at = {}
            self._pagination.reset()
        else:
            active, archived = self._active, self._archived
            held = self._active.keys() + self._archived.keys() + list(self._in_flight)
            records = merge_page(held, visible, self.key)

        seqs = {}
        for record in records:
            seqs[self.key(record)] = self._next_seq
            self._next_seq += 1

        split = partition(records, archived_ids, self.key)
        for record in split.active:
            active.insert(Entry(key=self.key(record), seq=seqs[self.key(record)], record=record))
        for record in split.archived:
            archived.insert(Entry(key=self.key(record), seq=seqs[self.key(record)], record=record))

        for archive_record in archive_records:
            if archive_record.archived_at is not None:
                self._archived_at[archive_record.item_ref.item_id] = archive_record.archived_at

        # in-flight transitions keep the collections they captured
        self._active, self._archived = active, archived
        self._pagination.advance(len(page.items), page.total_count, page.has_more)

        self.logger.info(
            "Store refreshed" if first_page else "Store page appended",
            offset=offset,
            returned=len(page.items),
            added=len(records),
            active=len(self._active),
            archived=len(self._archived),
            has_more=self._pagination.has_more,
        )
        return LifecycleResult.ok(data=records, message=f"Loaded {len(records)} {self.item_type.value} records")

    async def _fetch_archive_records(self):
        result = await self.gateway.archived_records(self.item_type, self.options)
        result.raise_for_error()
        return result.data
