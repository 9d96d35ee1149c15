from datetime import date, timedelta
from typing import Optional, Dict, Any, List

from .core import StockStatus

# Derived views over already-loaded product and sale lists.

STATUSES = [s.value for s in StockStatus]


def filter_products(products: List[Dict[str, Any]], search: Optional[str] = None,
                    category: Optional[str] = None, status: Optional[str] = None,
                    stock: Optional[str] = None) -> List[Dict[str, Any]]:
    term = (search or "").lower()
    out = []
    for p in products:
        if term and not any(term in p[f].lower() for f in ("name", "sku", "ean")):
            continue
        if category and category != "all" and p["category"] != category:
            continue
        if status and status != "all" and p["status"] != status:
            continue
        if stock == "low" and p["store_stock"] > p["min_stock"]:
            continue
        if stock == "high" and p["store_stock"] < p["max_stock"]:
            continue
        out.append(p)
    return out


def group_by_category(products: List[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    groups: Dict[str, List[Dict[str, Any]]] = {}
    for p in products:
        groups.setdefault(p["category"], []).append(p)
    return groups


def _status_counts(products: List[Dict[str, Any]]) -> Dict[str, int]:
    counts = {s: 0 for s in STATUSES}
    for p in products:
        counts[p["status"]] += 1
    return counts


def inventory_summary(products: List[Dict[str, Any]], category: Optional[str] = None) -> Dict[str, Any]:
    selected = filter_products(products, category=category)
    categories = []
    for name, items in group_by_category(products).items():
        categories.append({"category": name, "count": len(items), **_status_counts(items)})
    return {
        "total_products": len(selected),
        "status_counts": _status_counts(selected),
        "total_store_stock": sum(p["store_stock"] for p in selected),
        "total_warehouse_stock": sum(p["warehouse_stock"] for p in selected),
        "categories": categories,
    }


def _on(sales: List[Dict[str, Any]], day: date) -> List[Dict[str, Any]]:
    iso = day.isoformat()
    return [s for s in sales if s["date"] == iso]


def revenue_change(today_revenue: float, yesterday_revenue: float) -> float:
    if yesterday_revenue > 0:
        return (today_revenue - yesterday_revenue) / yesterday_revenue * 100
    if today_revenue > 0:
        return 100.0
    return 0.0


def dashboard_stats(products: List[Dict[str, Any]], sales: List[Dict[str, Any]], today: date) -> Dict[str, Any]:
    today_sales = _on(sales, today)
    yesterday_sales = _on(sales, today - timedelta(days=1))
    today_revenue = sum(s["total_price"] for s in today_sales)
    yesterday_revenue = sum(s["total_price"] for s in yesterday_sales)
    return {
        "today_sales": len(today_sales),
        "today_revenue": today_revenue,
        "today_units": sum(s["quantity"] for s in today_sales),
        "yesterday_revenue": yesterday_revenue,
        "revenue_change_pct": revenue_change(today_revenue, yesterday_revenue),
        "total_products": len(products),
        "critical_products": sum(1 for p in products if p["status"] == StockStatus.CRITICAL.value),
        "total_store_stock": sum(p["store_stock"] for p in products),
        "stock_value": sum(p["price"] * p["store_stock"] for p in products),
    }


def daily_sales(sales: List[Dict[str, Any]], today: date, days: int = 7) -> List[Dict[str, Any]]:
    """Revenue and units per day, oldest first, ending today."""
    out = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        day_sales = _on(sales, day)
        out.append({
            "date": day.isoformat(),
            "revenue": sum(s["total_price"] for s in day_sales),
            "units": sum(s["quantity"] for s in day_sales),
        })
    return out


def top_performers(sales: List[Dict[str, Any]], limit: int = 3) -> List[Dict[str, Any]]:
    by_seller: Dict[str, Dict[str, Any]] = {}
    for s in sales:
        row = by_seller.setdefault(s["seller"], {"name": s["seller"], "sales": 0, "revenue": 0.0, "units": 0})
        row["sales"] += 1
        row["revenue"] += s["total_price"]
        row["units"] += s["quantity"]
    ranked = sorted(by_seller.values(), key=lambda r: r["revenue"], reverse=True)
    return ranked[:limit]


# ---------------------------
# Market share against competitor brands
# ---------------------------
OWN_BRAND = "Apple"
COMPETITOR_BRANDS = {
    "Smartphones": ["Samsung", "Oppo", "Xiaomi", "Huawei"],
    "Computers": ["Asus", "HP", "Acer", "Lenovo", "Microsoft", "Google"],
}


def market_share(own_units: int, total_units: int) -> float:
    return own_units / total_units * 100 if total_units > 0 else 0.0


def week_bounds(today: date):
    """Sunday to Saturday week containing today."""
    start = today - timedelta(days=(today.weekday() + 1) % 7)
    return start, start + timedelta(days=6)


def _category_share(sales, competitor_sales, category: str) -> Dict[str, Any]:
    own = sum(s["quantity"] for s in sales if s["category"] == category)
    brands = {b: 0 for b in COMPETITOR_BRANDS[category]}
    for s in competitor_sales:
        if s["category"] != category:
            continue
        brands[s["brand"]] = brands.get(s["brand"], 0) + s["units"]
    competitors = sum(brands.values())
    brands[OWN_BRAND] = own
    return {
        "own_units": own,
        "competitor_units": competitors,
        "total": own + competitors,
        "share": market_share(own, own + competitors),
        "brands": brands,
    }


def share_analysis(sales: List[Dict[str, Any]], competitor_sales: List[Dict[str, Any]], today: date) -> Dict[str, Any]:
    start, end = week_bounds(today)
    start_iso, end_iso, today_iso = start.isoformat(), end.isoformat(), today.isoformat()
    periods = {
        "daily": lambda d: d == today_iso,
        "weekly": lambda d: start_iso <= d <= end_iso,
    }
    out = {}
    for period, within in periods.items():
        own = [s for s in sales if within(s["date"])]
        theirs = [s for s in competitor_sales if within(s["date"])]
        out[period] = {c: _category_share(own, theirs, c) for c in COMPETITOR_BRANDS}
    return out


def team_stats(members: List[Dict[str, Any]]) -> Dict[str, int]:
    return {
        "active_members": sum(1 for m in members if m["status"] == "active"),
        "champions": sum(1 for m in members if m["is_champion"]),
    }
