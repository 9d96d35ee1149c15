import logging
from typing import Optional, Dict, Any, List, Callable

from .core import (
    ProductIn, Product, InsufficientStock, NotFound, ValidationError,
    calculate_status, utcnow_iso, _make_product_dict, _validate
)
from .database import DocumentStore

logger = logging.getLogger(__name__)

PRODUCTS = "products"

Listener = Callable[[List[Dict[str, Any]]], None]


class StockLedger:
    """
    Owns the product collection: the in-memory view consumers read, the
    status rule applied on every write, and the transactional sale decrement.

    The view is loaded once by init() and afterwards only changed by this
    object's own confirmed writes. Consumers register with subscribe() and
    are called with the full product list after each change.
    """

    def __init__(self, store: DocumentStore):
        self.store = store
        self._products: Dict[str, Dict[str, Any]] = {}
        self._listeners: List[Listener] = []
        self.is_loaded = False

    # ---------------------------
    # Lifecycle
    # ---------------------------
    async def init(self):
        docs = await self.store.list(PRODUCTS)
        self._products = {d["id"]: d for d in docs}
        self.is_loaded = True
        logger.info("loaded %d products", len(self._products))
        self._emit()

    def dispose(self):
        self._listeners.clear()
        self._products = {}
        self.is_loaded = False

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)
        listener(self.products)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self):
        snapshot = self.products
        for listener in list(self._listeners):
            listener(snapshot)

    @property
    def products(self) -> List[Dict[str, Any]]:
        return [dict(p) for p in self._products.values()]

    def get(self, product_id: str) -> Optional[Dict[str, Any]]:
        p = self._products.get(product_id)
        return dict(p) if p else None

    # ---------------------------
    # Operations
    # ---------------------------
    async def create(self, draft) -> Dict[str, Any]:
        payload = _validate(ProductIn, draft)
        data = _make_product_dict(payload)
        data["created_at"] = utcnow_iso()
        try:
            pid = await self.store.add(PRODUCTS, data)
        except Exception:
            logger.error("failed to add product %r", payload.name)
            raise
        product = {"id": pid, **data}
        self._products[pid] = product
        logger.info("created product %s %r (%s)", pid, payload.name, data["status"])
        self._emit()
        return dict(product)

    async def update(self, product) -> Dict[str, Any]:
        payload = _validate(Product, product)
        data = _make_product_dict(payload)
        previous = await self.store.get(PRODUCTS, payload.id)
        if previous is None:
            raise NotFound(f"product {payload.id} not found")
        if "created_at" in previous:
            data["created_at"] = previous["created_at"]
        data["updated_at"] = utcnow_iso()
        try:
            await self.store.set(PRODUCTS, payload.id, data)
        except Exception:
            logger.error("failed to update product %s", payload.id)
            raise
        updated = {"id": payload.id, **data}
        self._products[payload.id] = updated
        logger.info("updated product %s (store_stock=%d, %s)", payload.id, payload.store_stock, data["status"])
        self._emit()
        return dict(updated)

    async def delete(self, product_id: str):
        try:
            await self.store.delete(PRODUCTS, product_id)
        except NotFound:
            # also drop any stale copy so the view matches the store
            if self._products.pop(product_id, None) is not None:
                self._emit()
            raise
        except Exception:
            logger.error("failed to delete product %s", product_id)
            raise
        self._products.pop(product_id, None)
        logger.info("deleted product %s", product_id)
        self._emit()

    async def find_by_barcode(self, ean: str) -> Optional[Dict[str, Any]]:
        matches = await self.store.query(PRODUCTS, "ean", ean)
        if not matches:
            return None
        if len(matches) > 1:
            logger.debug("barcode %s matches %d products, using the first", ean, len(matches))
        return matches[0]

    async def decrement_on_sale(self, product_id: str, quantity: int) -> Dict[str, Any]:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("quantity must be a positive integer")

        def apply(doc: Dict[str, Any]) -> Dict[str, Any]:
            new_stock = doc["store_stock"] - quantity
            if new_stock < 0:
                raise InsufficientStock(product_id, doc["store_stock"], quantity)
            return {
                "store_stock": new_stock,
                "status": calculate_status(new_stock).value,
                "updated_at": utcnow_iso(),
            }

        try:
            product = await self.store.run_transaction(PRODUCTS, product_id, apply)
        except InsufficientStock as e:
            logger.info("sale of %d rejected for %s: only %d left", quantity, product_id, e.available)
            raise
        except NotFound:
            raise
        except Exception:
            logger.error("stock decrement failed for %s", product_id)
            raise
        self._products[product_id] = product
        logger.info("sold %d of %s, store_stock now %d (%s)",
                    quantity, product_id, product["store_stock"], product["status"])
        self._emit()
        return dict(product)

    async def return_to_floor(self, product_id: str, quantity: int) -> Dict[str, Any]:
        """Put units back on the floor, e.g. to undo a decrement whose sale was never recorded."""
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("quantity must be a positive integer")

        def apply(doc: Dict[str, Any]) -> Dict[str, Any]:
            new_stock = doc["store_stock"] + quantity
            return {
                "store_stock": new_stock,
                "status": calculate_status(new_stock).value,
                "updated_at": utcnow_iso(),
            }

        product = await self.store.run_transaction(PRODUCTS, product_id, apply)
        self._products[product_id] = product
        logger.info("returned %d of %s to the floor, store_stock now %d", quantity, product_id, product["store_stock"])
        self._emit()
        return dict(product)
