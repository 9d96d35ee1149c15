# sdk/ledger_client.py
import requests
import httpx
from typing import Optional, Dict, Any

from stockledger.config import get_settings


class LedgerClient:
    def __init__(self, base_url: Optional[str] = None, api_key: Optional[str] = None, timeout: int = 10):
        self.base_url = (base_url or get_settings().api_base_url).rstrip("/")
        self.session = requests.Session()
        self.timeout = timeout
        if api_key:
            self.session.headers.update({"Authorization": f"Bearer {api_key}"})

    def reset(self):
        r = self.session.post(f"{self.base_url}/reset", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    # Products
    def create_product(self, name: str, category: str, sku: str, ean: str, store_stock: int,
                       warehouse_stock: int = 0, min_stock: int = 0, max_stock: int = 0,
                       price: float = 0.0, image_url: str = ""):
        r = self.session.post(f"{self.base_url}/products", json={
            "name": name, "category": category, "sku": sku, "ean": ean,
            "store_stock": store_stock, "warehouse_stock": warehouse_stock,
            "min_stock": min_stock, "max_stock": max_stock,
            "price": price, "image_url": image_url,
        }, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def list_products(self, search: Optional[str] = None, category: Optional[str] = None,
                      status: Optional[str] = None, stock: Optional[str] = None):
        params = {k: v for k, v in {"search": search, "category": category, "status": status, "stock": stock}.items() if v}
        r = self.session.get(f"{self.base_url}/products", params=params, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def get_product(self, product_id: str):
        r = self.session.get(f"{self.base_url}/products/{product_id}", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def find_by_barcode(self, ean: str) -> Optional[Dict[str, Any]]:
        r = self.session.get(f"{self.base_url}/products/barcode/{ean}", timeout=self.timeout)
        # absent barcode is not an error for callers
        if r.status_code == 404:
            return None
        r.raise_for_status()
        return r.json()

    def update_product(self, product: Dict[str, Any]):
        body = {k: v for k, v in product.items() if k not in ("id", "status", "created_at", "updated_at")}
        r = self.session.put(f"{self.base_url}/products/{product['id']}", json=body, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def delete_product(self, product_id: str):
        r = self.session.delete(f"{self.base_url}/products/{product_id}", timeout=self.timeout)
        r.raise_for_status()

    # Sale-driven decrement
    def sell(self, product_id: str, quantity: int = 1):
        r = self.session.post(f"{self.base_url}/products/{product_id}/sale", json={"quantity": quantity}, timeout=self.timeout)
        # no raise_for_status(): callers inspect 409
        return r

    async def sell_async(self, product_id: str, quantity: int = 1):
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.post(f"{self.base_url}/products/{product_id}/sale", json={"quantity": quantity})
            return r

    # Derived views
    def inventory_summary(self, category: Optional[str] = None):
        params = {"category": category} if category else {}
        r = self.session.get(f"{self.base_url}/inventory/summary", params=params, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def dashboard(self):
        r = self.session.get(f"{self.base_url}/dashboard", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    # Sales
    def list_sales(self):
        r = self.session.get(f"{self.base_url}/sales", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def record_sale(self, date: str, product: str, category: str, quantity: int, seller: str,
                    total_price: float, product_id: Optional[str] = None):
        r = self.session.post(f"{self.base_url}/sales", json={
            "date": date, "product": product, "category": category, "quantity": quantity,
            "seller": seller, "total_price": total_price, "product_id": product_id,
        }, timeout=self.timeout)
        return r

    def reset_sales(self):
        r = self.session.post(f"{self.base_url}/sales/reset", timeout=self.timeout)
        r.raise_for_status()
        return r.json()


if __name__ == "__main__":
    import argparse
    from rich import print

    parser = argparse.ArgumentParser(description="Stock ledger client")
    subparsers = parser.add_subparsers(dest="command", required=True)

    lp = subparsers.add_parser("list-products", help="List products")
    lp.add_argument("--search", help="Match name, SKU or EAN")
    lp.add_argument("--category", help="Filter by category")
    lp.add_argument("--status", choices=["critical", "warning", "optimal"], help="Filter by stock status")

    bc = subparsers.add_parser("barcode", help="Look up a product by EAN")
    bc.add_argument("--ean", required=True)

    cp = subparsers.add_parser("create-product", help="Register a new product")
    cp.add_argument("--name", required=True)
    cp.add_argument("--category", required=True)
    cp.add_argument("--sku", required=True)
    cp.add_argument("--ean", required=True)
    cp.add_argument("--store-stock", type=int, required=True)
    cp.add_argument("--warehouse-stock", type=int, default=0)
    cp.add_argument("--price", type=float, default=0.0)

    sl = subparsers.add_parser("sell", help="Take sold units off the floor")
    sl.add_argument("--product-id", required=True)
    sl.add_argument("--qty", type=int, default=1)

    subparsers.add_parser("summary", help="Inventory status summary")

    args = parser.parse_args()
    c = LedgerClient()

    if args.command == "list-products":
        print(c.list_products(args.search, args.category, args.status))
    elif args.command == "barcode":
        print(c.find_by_barcode(args.ean))
    elif args.command == "create-product":
        print(c.create_product(args.name, args.category, args.sku, args.ean, args.store_stock,
                               warehouse_stock=args.warehouse_stock, price=args.price))
    elif args.command == "sell":
        r = c.sell(args.product_id, args.qty)
        print(r.status_code, r.json())
    elif args.command == "summary":
        print(c.inventory_summary())
