import logging
import re
from datetime import date
from typing import Optional, Dict, Any, List, Callable, Type

from pydantic import BaseModel

from .core import (
    OrderIn, TeamMemberIn, TaskIn, CompetitorSaleIn, NotFound,
    utcnow_iso, _validate
)
from .database import DocumentStore

logger = logging.getLogger(__name__)


class Registry:
    """
    CRUD collection that follows the store through a live subscription.

    Subclasses set the collection name, the input model and the ordering of
    the in-memory list. Fields named in `preserved` are set by the registry
    on creation and carried over on update.
    """

    collection: str = ""
    model: Type[BaseModel] = BaseModel
    sort_field: str = "created_at"
    newest_first: bool = True
    preserved = ("created_at",)

    def __init__(self, store: DocumentStore):
        self.store = store
        self._items: List[Dict[str, Any]] = []
        self._unsubscribe: Optional[Callable[[], None]] = None

    def init(self):
        self._unsubscribe = self.store.on_snapshot(self.collection, self._on_snapshot)

    def dispose(self):
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        self._items = []

    def _on_snapshot(self, docs: List[Dict[str, Any]]):
        # ties keep store order
        self._items = sorted(docs, key=lambda d: d.get(self.sort_field) or "", reverse=self.newest_first)

    @property
    def items(self) -> List[Dict[str, Any]]:
        return [dict(i) for i in self._items]

    def _server_fields(self) -> Dict[str, Any]:
        return {"created_at": utcnow_iso()}

    def _make_dict(self, payload: BaseModel) -> Dict[str, Any]:
        return payload.model_dump(mode="json")

    async def add(self, item) -> Dict[str, Any]:
        payload = _validate(self.model, item)
        data = self._make_dict(payload)
        data.update(self._server_fields())
        item_id = await self.store.add(self.collection, data)
        logger.info("added %s/%s", self.collection, item_id)
        return {"id": item_id, **data}

    async def update(self, item_id: str, item) -> Dict[str, Any]:
        payload = _validate(self.model, item)
        previous = await self.store.get(self.collection, item_id)
        if previous is None:
            raise NotFound(f"{self.collection}/{item_id} not found")
        data = self._make_dict(payload)
        for field in self.preserved:
            data[field] = previous.get(field)
        data["updated_at"] = utcnow_iso()
        await self.store.set(self.collection, item_id, data)
        return {"id": item_id, **data}

    async def delete(self, item_id: str):
        await self.store.delete(self.collection, item_id)
        logger.info("deleted %s/%s", self.collection, item_id)

    async def reset_all(self) -> int:
        count = await self.store.delete_all(self.collection)
        logger.warning("reset %s, %d removed", self.collection, count)
        return count


class OrderRegistry(Registry):
    """Purchase orders. Delivery does not credit warehouse stock."""

    collection = "orders"
    model = OrderIn
    sort_field = "order_date"
    preserved = ("created_at", "order_number")

    def _server_fields(self) -> Dict[str, Any]:
        return {"created_at": utcnow_iso(), "order_number": self._next_order_number()}

    def _next_order_number(self) -> str:
        year = date.today().year
        pattern = re.compile(rf"^ORD-{year}-(\d+)$")
        taken = []
        for o in self._items:
            m = pattern.match(o.get("order_number") or "")
            if m:
                taken.append(int(m.group(1)))
        return f"ORD-{year}-{max(taken, default=0) + 1:03d}"


class TeamRegistry(Registry):
    collection = "team"
    model = TeamMemberIn
    sort_field = "name"
    newest_first = False


class TaskRegistry(Registry):
    collection = "tasks"
    model = TaskIn


class CompetitorSalesRegistry(Registry):
    collection = "competitor_sales"
    model = CompetitorSaleIn
    sort_field = "date"
