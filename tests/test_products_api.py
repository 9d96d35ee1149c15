# tests/test_products_api.py
def product(**overrides):
    body = {
        "name": "iPhone 16", "category": "iPhone", "sku": "IP16-128", "ean": "123456789012",
        "store_stock": 20, "warehouse_stock": 30, "min_stock": 5, "max_stock": 40,
        "price": 969.0, "image_url": "",
    }
    body.update(overrides)
    return body


def test_create_update_sell_through_api(client):
    r = client.post("/products", json=product(store_stock=20))
    assert r.status_code == 201
    p = r.json()
    assert p["status"] == "optimal"

    body = product(store_stock=10)
    r = client.put(f"/products/{p['id']}", json=body)
    assert r.status_code == 200
    assert r.json()["status"] == "warning"

    r = client.post(f"/products/{p['id']}/sale", json={"quantity": 6})
    assert r.status_code == 200
    assert r.json()["store_stock"] == 4
    assert r.json()["status"] == "critical"

    r = client.post(f"/products/{p['id']}/sale", json={"quantity": 100})
    assert r.status_code == 409
    assert r.json()["detail"] == "insufficient_stock"
    assert client.get(f"/products/{p['id']}").json()["store_stock"] == 4


def test_validation_errors(client):
    assert client.post("/products", json=product(store_stock=-1)).status_code == 422
    assert client.post("/products", json=product(price="free")).status_code == 422
    assert client.post("/products", json=product(category="Phones")).status_code == 422
    pid = client.post("/products", json=product()).json()["id"]
    assert client.post(f"/products/{pid}/sale", json={"quantity": 0}).status_code == 422
    assert len(client.get("/products").json()) == 1


def test_not_found_paths(client):
    assert client.get("/products/nope").status_code == 404
    assert client.put("/products/nope", json=product()).status_code == 404
    r = client.post("/products/nope/sale", json={"quantity": 1})
    assert r.status_code == 404
    assert r.json()["detail"] == "not_found"
    assert client.get("/products/barcode/000").status_code == 404


def test_barcode_lookup_with_duplicates(client):
    first = client.post("/products", json=product(name="Clear Case", ean="123456789012")).json()
    client.post("/products", json=product(name="Leather Case", ean="123456789012"))
    r = client.get("/products/barcode/123456789012")
    assert r.status_code == 200
    assert r.json()["id"] == first["id"]


def test_delete_twice(client):
    pid = client.post("/products", json=product()).json()["id"]
    assert client.delete(f"/products/{pid}").status_code == 204
    assert client.get(f"/products/{pid}").status_code == 404
    assert client.delete(f"/products/{pid}").status_code == 404


def test_filters_and_summary(client):
    client.post("/products", json=product(name="iPhone 16", sku="IP16", ean="111", store_stock=3, min_stock=5))
    client.post("/products", json=product(name="MacBook Air", category="Mac", sku="MBA13", ean="222", store_stock=12))
    client.post("/products", json=product(name="AirTag", category="Accessories", sku="AT1", ean="333",
                                          store_stock=50, max_stock=40))

    assert [p["name"] for p in client.get("/products", params={"search": "macbook"}).json()] == ["MacBook Air"]
    assert [p["name"] for p in client.get("/products", params={"search": "222"}).json()] == ["MacBook Air"]
    assert [p["name"] for p in client.get("/products", params={"status": "critical"}).json()] == ["iPhone 16"]
    assert [p["name"] for p in client.get("/products", params={"stock": "low"}).json()] == ["iPhone 16"]
    assert [p["name"] for p in client.get("/products", params={"stock": "high"}).json()] == ["AirTag"]
    assert [p["name"] for p in client.get("/products", params={"category": "Mac"}).json()] == ["MacBook Air"]

    summary = client.get("/inventory/summary").json()
    assert summary["total_products"] == 3
    assert summary["status_counts"] == {"critical": 1, "warning": 1, "optimal": 1}
    assert summary["total_store_stock"] == 65
    assert summary["total_warehouse_stock"] == 90
    assert {c["category"] for c in summary["categories"]} == {"iPhone", "Mac", "Accessories"}

    mac = client.get("/inventory/summary", params={"category": "Mac"}).json()
    assert mac["total_products"] == 1
    assert mac["status_counts"]["warning"] == 1


def test_reset_clears_products(client):
    client.post("/products", json=product())
    assert client.post("/reset").json() == {"status": "reset"}
    assert client.get("/products").json() == []
