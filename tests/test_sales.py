# tests/test_sales.py
import asyncio
from datetime import date, timedelta

import pytest

from stockledger.analytics import dashboard_stats, daily_sales, top_performers, revenue_change, group_by_category
from stockledger.core import InsufficientStock, NotFound, StoreUnavailable, ValidationError
from stockledger.database import DocumentStore
from stockledger.ledger import StockLedger
from stockledger.sales import SalesRegistry

TODAY = date(2026, 10, 19)


def sale(**overrides):
    body = {
        "date": TODAY.isoformat(), "product": "iPhone 16", "category": "Smartphones",
        "quantity": 1, "seller": "Sam", "total_price": 969.0,
    }
    body.update(overrides)
    return body


def make_registry():
    store = DocumentStore()
    ledger = StockLedger(store)
    registry = SalesRegistry(store, ledger)
    asyncio.run(ledger.init())
    registry.init()
    return ledger, registry


def test_registry_follows_store_snapshots_newest_first():
    _, registry = make_registry()
    asyncio.run(registry.add(sale(date="2026-10-17")))
    asyncio.run(registry.add(sale(date="2026-10-19")))
    asyncio.run(registry.add(sale(date="2026-10-18")))
    assert [s["date"] for s in registry.sales] == ["2026-10-19", "2026-10-18", "2026-10-17"]


def test_update_delete_and_reset():
    _, registry = make_registry()
    s = asyncio.run(registry.add(sale()))
    assert s["created_at"]
    updated = asyncio.run(registry.update(s["id"], sale(quantity=3, total_price=2907.0)))
    assert updated["created_at"] == s["created_at"]
    assert registry.sales[0]["quantity"] == 3

    asyncio.run(registry.delete(s["id"]))
    assert registry.sales == []
    with pytest.raises(NotFound):
        asyncio.run(registry.delete(s["id"]))
    with pytest.raises(NotFound):
        asyncio.run(registry.update("missing", sale()))

    asyncio.run(registry.add(sale()))
    asyncio.run(registry.add(sale()))
    assert asyncio.run(registry.reset_all()) == 2
    assert registry.sales == []


def test_sale_with_product_takes_stock_first():
    ledger, registry = make_registry()
    p = asyncio.run(ledger.create({
        "name": "iPhone 16", "category": "iPhone", "sku": "IP16", "ean": "111",
        "store_stock": 3, "warehouse_stock": 0, "min_stock": 1, "max_stock": 10, "price": 969.0,
    }))
    asyncio.run(registry.add(sale(quantity=2, product_id=p["id"])))
    assert ledger.get(p["id"])["store_stock"] == 1

    with pytest.raises(InsufficientStock):
        asyncio.run(registry.add(sale(quantity=2, product_id=p["id"])))
    assert len(registry.sales) == 1
    assert ledger.get(p["id"])["store_stock"] == 1


def test_failed_sale_write_returns_stock_to_floor(monkeypatch):
    ledger, registry = make_registry()
    p = asyncio.run(ledger.create({
        "name": "iPhone 16", "category": "iPhone", "sku": "IP16", "ean": "111",
        "store_stock": 5, "warehouse_stock": 0, "min_stock": 1, "max_stock": 10, "price": 969.0,
    }))
    store = registry.store
    real_add = store.add

    async def flaky_add(collection, data):
        if collection == "sales":
            raise StoreUnavailable("sales write timed out")
        return await real_add(collection, data)

    monkeypatch.setattr(store, "add", flaky_add)
    with pytest.raises(StoreUnavailable):
        asyncio.run(registry.add(sale(quantity=2, product_id=p["id"])))

    assert ledger.get(p["id"])["store_stock"] == 5
    assert ledger.get(p["id"])["status"] == "critical"
    assert asyncio.run(store.get("products", p["id"]))["store_stock"] == 5
    assert registry.sales == []


def test_sale_date_must_be_zero_padded_iso():
    _, registry = make_registry()
    for bad in ("2026-10-9", "2026-1-09", "19/10/2026", "2026-02-30"):
        with pytest.raises(ValidationError):
            asyncio.run(registry.add(sale(date=bad)))
    assert registry.sales == []
    assert asyncio.run(registry.add(sale(date="2026-10-09")))["date"] == "2026-10-09"


def test_dispose_stops_following_store():
    _, registry = make_registry()
    registry.dispose()
    asyncio.run(registry.add(sale()))
    assert registry.sales == []


def test_revenue_change_rules():
    assert revenue_change(0, 0) == 0
    assert revenue_change(50, 0) == 100
    assert revenue_change(150, 100) == 50
    assert revenue_change(50, 100) == -50


def test_dashboard_stats():
    products = [
        {"category": "iPhone", "status": "critical", "store_stock": 2, "price": 1000.0},
        {"category": "Mac", "status": "optimal", "store_stock": 20, "price": 1500.0},
    ]
    sales = [
        sale(total_price=300.0, quantity=2),
        sale(total_price=100.0),
        sale(date=(TODAY - timedelta(days=1)).isoformat(), total_price=200.0),
        sale(date=(TODAY - timedelta(days=9)).isoformat(), total_price=999.0),
    ]
    stats = dashboard_stats(products, sales, TODAY)
    assert stats["today_sales"] == 2
    assert stats["today_revenue"] == 400.0
    assert stats["today_units"] == 3
    assert stats["revenue_change_pct"] == 100.0
    assert stats["critical_products"] == 1
    assert stats["total_store_stock"] == 22
    assert stats["stock_value"] == 32000.0

    days = daily_sales(sales, TODAY)
    assert len(days) == 7
    assert days[0]["date"] == (TODAY - timedelta(days=6)).isoformat()
    assert days[-1] == {"date": TODAY.isoformat(), "revenue": 400.0, "units": 3}
    assert days[-2]["revenue"] == 200.0

    assert list(group_by_category(products)) == ["iPhone", "Mac"]


def test_top_performers():
    assert top_performers([]) == []
    sales = [
        sale(seller="Ana", total_price=100.0),
        sale(seller="Ben", total_price=500.0, quantity=2),
        sale(seller="Ana", total_price=150.0),
        sale(seller="Cy", total_price=10.0),
        sale(seller="Di", total_price=5.0),
    ]
    top = top_performers(sales)
    assert [t["name"] for t in top] == ["Ben", "Ana", "Cy"]
    assert top[1] == {"name": "Ana", "sales": 2, "revenue": 250.0, "units": 2}


def test_sales_and_dashboard_over_http(client):
    p = client.post("/products", json={
        "name": "MacBook Air", "category": "Mac", "sku": "MBA13", "ean": "222",
        "store_stock": 4, "warehouse_stock": 0, "min_stock": 1, "max_stock": 10, "price": 1199.0,
    }).json()
    today = date.today().isoformat()
    r = client.post("/sales", json=sale(date=today, product="MacBook Air", category="Computers",
                                        quantity=2, total_price=2398.0, product_id=p["id"]))
    assert r.status_code == 201
    assert client.get(f"/products/{p['id']}").json()["store_stock"] == 2

    r = client.post("/sales", json=sale(date=today, quantity=5, product_id=p["id"]))
    assert r.status_code == 409
    assert len(client.get("/sales").json()) == 1

    assert client.post("/sales", json=sale(date="19/10/2026")).status_code == 422
    assert client.post("/sales", json=sale(date="2026-10-9")).status_code == 422
    assert client.post("/sales", json=sale(category="Tablets")).status_code == 422

    dash = client.get("/dashboard").json()
    assert dash["stats"]["today_revenue"] == 2398.0
    assert dash["stats"]["critical_products"] == 1
    assert dash["top_performers"][0]["name"] == "Sam"

    sid = client.get("/sales").json()[0]["id"]
    r = client.put(f"/sales/{sid}", json=sale(date=today, seller="Alex"))
    assert r.json()["seller"] == "Alex"
    assert client.delete(f"/sales/{sid}").status_code == 204
    assert client.post("/sales/reset").json() == {"removed": 0}
