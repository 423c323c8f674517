"""Mirror engine for pymirror - scanning, change detection and reconciliation."""

from .comparator import ChangeDetector, SyncAction, SyncDecision
from .engine import MirrorEngine
from .operations import FileOperations
from .paths import PathMapper
from .permissions import (
    AccessEntry,
    AclEntry,
    PermissionDescriptor,
    PermissionReconciler,
    has_permission_privilege,
)
from .reclaimer import OrphanReclaimer
from .scanner import Entry, EntryKind, TreeRoot, TreeScanner

__all__ = [
    "MirrorEngine",
    "PathMapper",
    "TreeScanner",
    "Entry",
    "EntryKind",
    "TreeRoot",
    "ChangeDetector",
    "SyncAction",
    "SyncDecision",
    "FileOperations",
    "PermissionReconciler",
    "PermissionDescriptor",
    "AccessEntry",
    "AclEntry",
    "has_permission_privilege",
    "OrphanReclaimer",
]
