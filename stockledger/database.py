import asyncio
import copy
import logging
import uuid
from typing import Dict, Any, List, Callable, Optional

from .core import NotFound, StoreUnavailable, TransactionConflict

# In-process document store: collections of versioned documents, per-document
# locks, snapshot listeners and single-document transactions.

logger = logging.getLogger(__name__)

Document = Dict[str, Any]
SnapshotCallback = Callable[[List[Document]], None]


class DocumentStore:
    def __init__(self, latency: float = 0.0, max_attempts: int = 5):
        self.latency = latency
        self.max_attempts = max_attempts
        self.available = True
        self._collections: Dict[str, Dict[str, Document]] = {}
        self._versions: Dict[str, int] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._listeners: Dict[str, List[SnapshotCallback]] = {}

    def _get_lock(self, key: str) -> asyncio.Lock:
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    def _docs(self, collection: str) -> Dict[str, Document]:
        return self._collections.setdefault(collection, {})

    async def _round_trip(self):
        await asyncio.sleep(self.latency)
        if not self.available:
            raise StoreUnavailable("document store is unreachable")

    def _out(self, doc_id: str, data: Document) -> Document:
        return {"id": doc_id, **copy.deepcopy(data)}

    def _notify(self, collection: str):
        listeners = list(self._listeners.get(collection, []))
        if not listeners:
            return
        snapshot = self._snapshot(collection)
        for cb in listeners:
            cb(snapshot)

    def _snapshot(self, collection: str) -> List[Document]:
        return [self._out(k, v) for k, v in self._docs(collection).items()]

    # ---------------------------
    # Per-document CRUD
    # ---------------------------
    async def add(self, collection: str, data: Document) -> str:
        await self._round_trip()
        doc_id = uuid.uuid4().hex
        self._docs(collection)[doc_id] = copy.deepcopy(data)
        self._versions[f"{collection}:{doc_id}"] = 1
        self._notify(collection)
        return doc_id

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        await self._round_trip()
        data = self._docs(collection).get(doc_id)
        if data is None:
            return None
        return self._out(doc_id, data)

    async def set(self, collection: str, doc_id: str, data: Document) -> Document:
        await self._round_trip()
        key = f"{collection}:{doc_id}"
        async with self._get_lock(key):
            docs = self._docs(collection)
            if doc_id not in docs:
                raise NotFound(f"{collection}/{doc_id} not found")
            docs[doc_id] = copy.deepcopy(data)
            self._versions[key] += 1
        self._notify(collection)
        return self._out(doc_id, data)

    async def delete(self, collection: str, doc_id: str):
        await self._round_trip()
        key = f"{collection}:{doc_id}"
        async with self._get_lock(key):
            docs = self._docs(collection)
            if doc_id not in docs:
                raise NotFound(f"{collection}/{doc_id} not found")
            del docs[doc_id]
            self._versions.pop(key, None)
        self._locks.pop(key, None)
        self._notify(collection)

    async def delete_all(self, collection: str) -> int:
        # batch delete, committed as one write
        await self._round_trip()
        docs = self._docs(collection)
        count = len(docs)
        for doc_id in list(docs):
            self._versions.pop(f"{collection}:{doc_id}", None)
        docs.clear()
        self._notify(collection)
        return count

    async def list(self, collection: str) -> List[Document]:
        await self._round_trip()
        return self._snapshot(collection)

    async def query(self, collection: str, field: str, value: Any) -> List[Document]:
        """Exact-match query, results in insertion order."""
        await self._round_trip()
        return [self._out(k, v) for k, v in self._docs(collection).items() if v.get(field) == value]

    # ---------------------------
    # Single-document transaction
    # ---------------------------
    async def run_transaction(self, collection: str, doc_id: str, fn: Callable[[Document], Document]) -> Document:
        """
        Read-modify-write on one document with optimistic concurrency.

        fn receives a copy of the current document and returns the fields to
        merge in. The write commits only if the document version is the one
        that was read; otherwise the read and fn are retried. Anything fn
        raises aborts the transaction with nothing written.
        """
        key = f"{collection}:{doc_id}"
        for attempt in range(1, self.max_attempts + 1):
            await self._round_trip()
            data = self._docs(collection).get(doc_id)
            if data is None:
                raise NotFound(f"{collection}/{doc_id} not found")
            read_version = self._versions[key]
            changes = fn(self._out(doc_id, data))

            # commit round trip; other writers may land in between
            await self._round_trip()
            async with self._get_lock(key):
                if self._versions.get(key) != read_version:
                    logger.debug("transaction on %s lost race (attempt %d)", key, attempt)
                    continue
                current = self._docs(collection)[doc_id]
                current.update(copy.deepcopy(changes))
                self._versions[key] = read_version + 1
                result = self._out(doc_id, current)
            self._notify(collection)
            return result

        logger.warning("transaction on %s gave up after %d attempts", key, self.max_attempts)
        raise TransactionConflict(f"{collection}/{doc_id} kept changing, gave up after {self.max_attempts} attempts")

    # ---------------------------
    # Live subscriptions
    # ---------------------------
    def on_snapshot(self, collection: str, callback: SnapshotCallback) -> Callable[[], None]:
        listeners = self._listeners.setdefault(collection, [])
        listeners.append(callback)
        callback(self._snapshot(collection))

        def unsubscribe():
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    def clear(self):
        self._collections.clear()
        self._versions.clear()
        self._locks.clear()
        for collection in list(self._listeners):
            self._notify(collection)
