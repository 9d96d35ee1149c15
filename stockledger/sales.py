import logging
from typing import Optional, Dict, Any, List

from .core import SaleIn, NotFound, _validate
from .database import DocumentStore
from .ledger import StockLedger
from .registries import Registry

logger = logging.getLogger(__name__)


class SalesRegistry(Registry):
    """Sales log kept current through a live store subscription."""

    collection = "sales"
    model = SaleIn
    sort_field = "date"

    def __init__(self, store: DocumentStore, ledger: Optional[StockLedger] = None):
        super().__init__(store)
        self.ledger = ledger

    @property
    def sales(self) -> List[Dict[str, Any]]:
        return self.items

    async def add(self, item) -> Dict[str, Any]:
        payload = _validate(SaleIn, item)
        if not payload.product_id:
            sale = await super().add(payload)
            logger.info("recorded sale %s: %d x %r by %s", sale["id"], payload.quantity, payload.product, payload.seller)
            return sale

        if self.ledger is None:
            raise NotFound("no stock ledger attached to record against")
        # stock is taken first; a rejected decrement records nothing
        await self.ledger.decrement_on_sale(payload.product_id, payload.quantity)
        try:
            sale = await super().add(payload)
        except Exception:
            logger.error("sale write failed, returning %d of %s to the floor", payload.quantity, payload.product_id)
            try:
                await self.ledger.return_to_floor(payload.product_id, payload.quantity)
            except Exception:
                logger.exception("could not return stock for %s", payload.product_id)
            raise
        logger.info("recorded sale %s: %d x %r by %s", sale["id"], payload.quantity, payload.product, payload.seller)
        return sale
