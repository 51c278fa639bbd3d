"""
PawSafe - Sync Module
Offline-first reconciliation of the local store with the remote store.
"""

from pawsafe.sync.codec import RemoteReport, from_remote, to_remote
from pawsafe.sync.merge import merge_reports, remote_wins
from pawsafe.sync.remote import (
    FirebaseRemoteStore,
    InMemoryRemoteStore,
    RemoteChange,
    RemoteStore,
    RemoteSubscription,
)
from pawsafe.sync.engine import PushResult, SyncEngine, SyncResult

__all__ = [
    # Codec
    "RemoteReport",
    "from_remote",
    "to_remote",
    # Merge
    "merge_reports",
    "remote_wins",
    # Remote stores
    "FirebaseRemoteStore",
    "InMemoryRemoteStore",
    "RemoteChange",
    "RemoteStore",
    "RemoteSubscription",
    # Engine
    "PushResult",
    "SyncEngine",
    "SyncResult",
]
