from collections import OrderedDict

from shared.helper.HelperConfig import HelperConfig
from shared.models.task import CachedCollection


class CollectionCache:
    """Bounded LRU of the last insert batch per collection id.

    An entry is only valid while its collection has not been purged or
    re-inserted; callers evict it together with those operations.
    """

    def __init__(self, helper_config: HelperConfig, max_collections: int | None = None):
        self.logging = helper_config.get_logger()
        self._max_collections = max_collections or int(helper_config.get_number_val("CACHE_MAX_COLLECTIONS", default=64))
        self._entries: OrderedDict[str, CachedCollection] = OrderedDict()

    def get(self, collection_id: str) -> CachedCollection | None:
        entry = self._entries.get(collection_id)
        if entry is not None:
            self._entries.move_to_end(collection_id)
        return entry

    def peek(self, collection_id: str) -> CachedCollection | None:
        """Like get() but without touching the LRU order."""
        return self._entries.get(collection_id)

    def put(self, collection_id: str, entry: CachedCollection) -> None:
        self._entries[collection_id] = entry
        self._entries.move_to_end(collection_id)
        while len(self._entries) > self._max_collections:
            dropped, _ = self._entries.popitem(last=False)
            self.logging.debug("Collection cache full, dropped %s", dropped)

    def evict(self, collection_id: str) -> bool:
        return self._entries.pop(collection_id, None) is not None

    def evict_chat(self, chat_id: str) -> int:
        """Evict the chat-level entry and every task collection of a chat."""
        prefix = f"{chat_id}_"
        doomed = [cid for cid in self._entries if cid == chat_id or cid.startswith(prefix)]
        for cid in doomed:
            del self._entries[cid]
        return len(doomed)

    def __contains__(self, collection_id: str) -> bool:
        return collection_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
