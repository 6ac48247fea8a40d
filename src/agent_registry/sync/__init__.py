"""Remote item cache: planning, approval and commit."""

from agent_registry.sync.approval import PerformSyncResult, perform_remote_sync
from agent_registry.sync.cache import (
    PreparedSync,
    RemoteItem,
    SyncItem,
    SyncPlan,
    get_cached_item_paths,
    get_local_cache_path,
    prepare_sync,
)

__all__ = [
    "PerformSyncResult",
    "PreparedSync",
    "RemoteItem",
    "SyncItem",
    "SyncPlan",
    "get_cached_item_paths",
    "get_local_cache_path",
    "perform_remote_sync",
    "prepare_sync",
]
