"""
Domain store instantiations
Per-record-category stores with their eligibility rules and record sources
"""

from typing import Dict, Optional

from clinic_archive.clients.records import RecordSource, RpcRecordSource
from clinic_archive.core.config import settings
from clinic_archive.models import CallOptions, ItemType, Scope
from clinic_archive.services.gateway import LifecycleGateway
from clinic_archive.services.store import DomainStore, EligibilityPredicate
from clinic_archive.services.synchronizer import Record


def appointment_is_archivable(record: Record) -> bool:
    """Only appointments in a terminal business state may be archived"""
    return str(record.get("status") or "").lower() == "completed"


ELIGIBILITY_RULES: Dict[ItemType, EligibilityPredicate] = {
    ItemType.APPOINTMENT: appointment_is_archivable,
    ItemType.CLINIC_APPOINTMENT: appointment_is_archivable,
}

INELIGIBLE_MESSAGES: Dict[ItemType, str] = {
    ItemType.APPOINTMENT: "Only completed appointments can be archived",
    ItemType.CLINIC_APPOINTMENT: "Only completed appointments can be archived",
}

# (procedure, key holding the records in the legacy response shape)
RECORD_FUNCTIONS: Dict[ItemType, tuple] = {
    ItemType.APPOINTMENT: (settings.RECORDS_FUNCTION, "appointments"),
    ItemType.CLINIC_APPOINTMENT: (settings.RECORDS_FUNCTION, "appointments"),
    ItemType.FEEDBACK: (settings.FEEDBACK_RECORDS_FUNCTION, "feedback_history"),
    ItemType.NOTIFICATION: (settings.NOTIFICATION_RECORDS_FUNCTION, "notifications"),
}


def default_record_source(gateway: LifecycleGateway, item_type: ItemType) -> RecordSource:
    item_type = ItemType(item_type)
    if item_type not in RECORD_FUNCTIONS:
        raise ValueError(f"No record source configured for '{item_type.value}'")
    function, items_key = RECORD_FUNCTIONS[item_type]
    return RpcRecordSource(gateway.transport, function, items_key=items_key)


def create_store(
    item_type: ItemType,
    gateway: LifecycleGateway,
    record_source: Optional[RecordSource] = None,
    *,
    eligibility: Optional[EligibilityPredicate] = None,
    options: Optional[CallOptions] = None,
    page_limit: Optional[int] = None,
) -> DomainStore:
    """Build a fresh store for item_type; the default eligibility rule applies unless overridden"""
    item_type = ItemType(item_type)
    return DomainStore(
        item_type,
        gateway,
        record_source or default_record_source(gateway, item_type),
        eligibility=eligibility or ELIGIBILITY_RULES.get(item_type),
        ineligible_message=INELIGIBLE_MESSAGES.get(item_type),
        options=options,
        page_limit=page_limit,
    )


def create_appointment_store(gateway, record_source=None, page_limit=None) -> DomainStore:
    return create_store(ItemType.APPOINTMENT, gateway, record_source, page_limit=page_limit)


def create_feedback_store(gateway, record_source=None, page_limit=None) -> DomainStore:
    return create_store(ItemType.FEEDBACK, gateway, record_source, page_limit=page_limit)


def create_notification_store(gateway, record_source=None, page_limit=None) -> DomainStore:
    return create_store(ItemType.NOTIFICATION, gateway, record_source, page_limit=page_limit)


def create_clinic_appointment_store(gateway, record_source=None, page_limit=None) -> DomainStore:
    """Staff view of the clinic's appointments, always acting at clinic scope"""
    return create_store(
        ItemType.CLINIC_APPOINTMENT,
        gateway,
        record_source,
        options=CallOptions(scope_override=Scope.CLINIC),
        page_limit=page_limit,
    )
