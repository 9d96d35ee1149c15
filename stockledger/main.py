# stockledger/main.py
from contextlib import asynccontextmanager
from datetime import date
from typing import Optional, Dict, Any

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .analytics import (
    filter_products, inventory_summary, dashboard_stats, daily_sales, top_performers,
    share_analysis, team_stats
)
from .config import get_settings, configure_logging
from .core import ProductIn, Product, SaleRequest, LedgerError
from .database import DocumentStore
from .ledger import StockLedger
from .registries import OrderRegistry, TeamRegistry, TaskRegistry, CompetitorSalesRegistry
from .routes import registry_router
from .sales import SalesRegistry

settings = get_settings()
configure_logging(settings.log_level)

# ---------------------------
# Process-wide services
# ---------------------------
store = DocumentStore(latency=settings.store_latency, max_attempts=settings.transaction_max_attempts)
ledger = StockLedger(store)
sales = SalesRegistry(store, ledger)
competitor_sales = CompetitorSalesRegistry(store)
orders = OrderRegistry(store)
team = TeamRegistry(store)
tasks = TaskRegistry(store)

REGISTRIES = [sales, competitor_sales, orders, team, tasks]


@asynccontextmanager
async def lifespan(app: FastAPI):
    await ledger.init()
    for registry in REGISTRIES:
        registry.init()
    yield
    for registry in REGISTRIES:
        registry.dispose()
    ledger.dispose()


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.code, "message": exc.message})


# ---------------------------
# Product endpoints
# ---------------------------
@app.post("/products", status_code=201)
async def create_product(payload: ProductIn):
    return await ledger.create(payload)


@app.get("/products")
async def list_products(search: Optional[str] = None, category: Optional[str] = None,
                        status: Optional[str] = None, stock: Optional[str] = None):
    return filter_products(ledger.products, search=search, category=category, status=status, stock=stock)


@app.get("/products/barcode/{ean}")
async def get_product_by_barcode(ean: str):
    p = await ledger.find_by_barcode(ean)
    if not p:
        raise HTTPException(status_code=404, detail="product not found")
    return p


@app.get("/products/{product_id}")
async def get_product(product_id: str):
    p = ledger.get(product_id)
    if not p:
        raise HTTPException(status_code=404, detail="product not found")
    return p


@app.put("/products/{product_id}")
async def update_product(product_id: str, payload: ProductIn):
    data: Dict[str, Any] = payload.model_dump()
    data["id"] = product_id
    return await ledger.update(Product(**data))


@app.delete("/products/{product_id}", status_code=204)
async def delete_product(product_id: str):
    await ledger.delete(product_id)
    return Response(status_code=204)


@app.post("/products/{product_id}/sale")
async def sell_product(product_id: str, req: SaleRequest):
    return await ledger.decrement_on_sale(product_id, req.quantity)


# ---------------------------
# Derived views
# ---------------------------
@app.get("/inventory/summary")
async def get_inventory_summary(category: Optional[str] = None):
    return inventory_summary(ledger.products, category=category)


@app.get("/dashboard")
async def get_dashboard():
    today = date.today()
    all_sales = sales.sales
    return {
        "stats": dashboard_stats(ledger.products, all_sales, today),
        "daily": daily_sales(all_sales, today),
        "top_performers": top_performers(all_sales),
        "team": team_stats(team.items),
    }


@app.get("/analytics/market-share")
async def get_market_share():
    return share_analysis(sales.sales, competitor_sales.items, date.today())


# ---------------------------
# Registries
# ---------------------------
app.include_router(registry_router("/sales", sales, resettable=True))
app.include_router(registry_router("/competitor-sales", competitor_sales, resettable=True))
app.include_router(registry_router("/orders", orders))
app.include_router(registry_router("/team", team))
app.include_router(registry_router("/tasks", tasks))


# ---------------------------
# Utility: reset (for tests/demo)
# ---------------------------
@app.post("/reset")
async def reset_all():
    store.clear()
    await ledger.init()
    return {"status": "reset"}
