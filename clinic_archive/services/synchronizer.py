"""
List Synchronizer
Partitions fetched records into active/archived using the server's archived-id set
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Collection, Dict, Iterable, List

Record = Dict[str, Any]
KeyFunc = Callable[[Record], str]


def record_id(record: Record) -> str:
    """Default record key: ``id``, falling back to ``item_id``"""
    value = record.get("id")
    if value is None:
        value = record.get("item_id")
    if value is None:
        raise KeyError("Record has neither 'id' nor 'item_id'")
    return str(value)


@dataclass
class Partition:
    active: List[Record] = field(default_factory=list)
    archived: List[Record] = field(default_factory=list)


def partition(
    all_records: Iterable[Record],
    archived_ids: Collection[str],
    key: KeyFunc = record_id,
) -> Partition:
    """
    Place every record in exactly one list by membership of its key in
    archived_ids. Any archived flag carried on the record itself is ignored.
    Input order is preserved within each list.
    """
    result = Partition()
    for record in all_records:
        if key(record) in archived_ids:
            result.archived.append(record)
        else:
            result.active.append(record)
    return result


def merge_page(
    existing_ids: Collection[str],
    page: Iterable[Record],
    key: KeyFunc = record_id,
) -> List[Record]:
    """Drop records already held, or repeated within the page itself"""
    seen = set(existing_ids)
    fresh = []
    for record in page:
        record_key = key(record)
        if record_key in seen:
            continue
        seen.add(record_key)
        fresh.append(record)
    return fresh
