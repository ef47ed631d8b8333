"""
Lifecycle services
"""

from clinic_archive.services.domains import (
    create_appointment_store,
    create_clinic_appointment_store,
    create_feedback_store,
    create_notification_store,
    create_store,
)
from clinic_archive.services.gateway import LifecycleGateway
from clinic_archive.services.store import DomainStore
from clinic_archive.services.synchronizer import Partition, partition

__all__ = [
    "DomainStore",
    "LifecycleGateway",
    "Partition",
    "partition",
    "create_store",
    "create_appointment_store",
    "create_clinic_appointment_store",
    "create_feedback_store",
    "create_notification_store",
]
