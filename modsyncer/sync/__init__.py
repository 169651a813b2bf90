"""
Sync engine: inventory, reconciliation, planning and transfers.
"""

from .inventory import LocalFile, scan_local_mods
from .orchestrator import TransferOrchestrator
from .plan import PendingPlan, SyncPlan, choose_transfer_mode, confirm, propose
from .progress import EventState, ProgressEvent, TransferResult
from .reconcile import DeleteCandidate, DeleteReason, ReconciliationResult, reconcile
from .session import SyncSession
from .transport import ByteStreamer
from .units import Category, TransferUnit, UnitState

__all__ = [
    "ByteStreamer",
    "Category",
    "DeleteCandidate",
    "DeleteReason",
    "EventState",
    "LocalFile",
    "PendingPlan",
    "ProgressEvent",
    "ReconciliationResult",
    "SyncPlan",
    "SyncSession",
    "TransferOrchestrator",
    "TransferResult",
    "TransferUnit",
    "UnitState",
    "choose_transfer_mode",
    "confirm",
    "propose",
    "reconcile",
    "scan_local_mods",
]
