# tests/test_concurrency.py
import asyncio

import httpx

from stockledger.core import InsufficientStock, TransactionConflict
from stockledger.database import DocumentStore
from stockledger.ledger import StockLedger
from stockledger.main import app

DRAFT = {
    "name": "AirPods Pro", "category": "Audio", "sku": "APP2", "ean": "190199246850",
    "store_stock": 10, "warehouse_stock": 0, "min_stock": 5, "max_stock": 40, "price": 279.0,
}


def test_concurrent_sales_do_not_lose_updates():
    async def scenario():
        ledger = StockLedger(DocumentStore())
        await ledger.init()
        p = await ledger.create(DRAFT)
        await asyncio.gather(
            ledger.decrement_on_sale(p["id"], 4),
            ledger.decrement_on_sale(p["id"], 5),
        )
        return ledger, p["id"]

    ledger, pid = asyncio.run(scenario())
    assert ledger.get(pid)["store_stock"] == 1
    assert ledger.get(pid)["status"] == "critical"


def test_many_concurrent_sales_never_oversell():
    async def scenario():
        ledger = StockLedger(DocumentStore(max_attempts=20))
        await ledger.init()
        p = await ledger.create({**DRAFT, "store_stock": 5})
        results = await asyncio.gather(
            *[ledger.decrement_on_sale(p["id"], 1) for _ in range(8)],
            return_exceptions=True,
        )
        return ledger, p["id"], results

    ledger, pid, results = asyncio.run(scenario())
    sold = [r for r in results if isinstance(r, dict)]
    rejected = [r for r in results if isinstance(r, InsufficientStock)]
    assert len(sold) == 5
    assert len(rejected) == 3
    assert ledger.get(pid)["store_stock"] == 0


def test_transaction_gives_up_when_retries_exhausted():
    async def scenario():
        ledger = StockLedger(DocumentStore(max_attempts=1))
        await ledger.init()
        p = await ledger.create(DRAFT)
        results = await asyncio.gather(
            ledger.decrement_on_sale(p["id"], 1),
            ledger.decrement_on_sale(p["id"], 1),
            return_exceptions=True,
        )
        stored = await ledger.store.get("products", p["id"])
        return results, stored

    results, stored = asyncio.run(scenario())
    assert sum(isinstance(r, dict) for r in results) == 1
    assert sum(isinstance(r, TransactionConflict) for r in results) == 1
    assert stored["store_stock"] == 9


async def _sell(ac, product_id, qty):
    return await ac.post(f"/products/{product_id}/sale", json={"quantity": qty})


def test_concurrent_last_unit_over_http():
    async def scenario():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
            await ac.post("/reset")
            r = await ac.post("/products", json={**DRAFT, "store_stock": 1})
            pid = r.json()["id"]
            results = await asyncio.gather(_sell(ac, pid, 1), _sell(ac, pid, 1))
            final = await ac.get(f"/products/{pid}")
            return [r.status_code for r in results], final.json()

    statuses, final = asyncio.run(scenario())
    assert sorted(statuses) == [200, 409]
    assert final["store_stock"] == 0
