import asyncio
from sdk.ledger_client import LedgerClient


async def simulate_sale(client, label, product_id, qty):
    r = await client.sell_async(product_id, qty)
    if r.status_code == 200:
        body = r.json()
        print(f"✅ {label} sold {qty} units (left on floor: {body['store_stock']}, {body['status']})")
    elif r.status_code == 409:
        print(f"❌ {label} sale rejected: {r.json().get('message')}")
    elif r.status_code == 404:
        print(f"❌ {label} sale failed: product not found.")
    else:
        print(f"⚠️  {label} unexpected response {r.status_code}: {r.text}")


async def main():
    c = LedgerClient()
    c.reset()

    product = c.create_product("iPhone 16 Pro", "iPhone", "IP16P-256", "0195949000000",
                               store_stock=10, warehouse_stock=20, min_stock=5, max_stock=40, price=1229.0)
    product_id = product["id"]
    print(f"\n📱 Registered product: {product['name']} with {product['store_stock']} on the floor ({product['status']})")

    print("\n⚡ Two tills selling at once (4 + 5 units)...")
    await asyncio.gather(
        simulate_sale(c, "till-1", product_id, 4),
        simulate_sale(c, "till-2", product_id, 5),
    )
    print("\n📦 After both sales:", c.get_product(product_id))

    print("\n⚡ Two tills racing for the last unit...")
    await asyncio.gather(
        simulate_sale(c, "till-1", product_id, 1),
        simulate_sale(c, "till-2", product_id, 1),
    )
    print("\n📦 Final product state:", c.get_product(product_id))
    print("📊 Summary:", c.inventory_summary())

if __name__ == "__main__":
    asyncio.run(main())
