"""
Cart operations against per-size stock.
"""

from emporium.models import Cart, CartItem


def add(client, product_id, size, quantity):
    return client.post("/api/cart/add", json={"productId": product_id, "size": size, "quantity": quantity})


class TestAddItem:
    def test_add_creates_cart_lazily(self, client, db, shopper, product):
        assert db.query(Cart).count() == 0
        resp = add(client, product.id, "M", 3)
        assert resp.status_code == 200, resp.text
        assert resp.json()["cartItem"]["quantity"] == 3
        assert db.query(Cart).count() == 1

    def test_add_same_pair_increments(self, client, db, shopper, product):
        add(client, product.id, "M", 2)
        resp = add(client, product.id, "M", 3)
        assert resp.json()["cartItem"]["quantity"] == 5
        assert db.query(CartItem).count() == 1

    def test_sizes_are_separate_lines(self, client, db, shopper, product):
        add(client, product.id, "M", 1)
        add(client, product.id, "L", 1)
        assert db.query(CartItem).count() == 2

    def test_over_stock_leaves_cart_unchanged(self, client, db, shopper, product):
        resp = add(client, product.id, "L", 5)
        assert resp.status_code == 400
        assert resp.json()["available"] == 2
        assert db.query(CartItem).count() == 0
        quantity = client.get("/api/cart/quantity", params={"productId": product.id, "size": "L"})
        assert quantity.json()["quantity"] == 0

    def test_cumulative_quantity_capped_by_stock(self, client, shopper, product):
        assert add(client, product.id, "M", 8).status_code == 200
        assert add(client, product.id, "M", 3).status_code == 400
        quantity = client.get("/api/cart/quantity", params={"productId": product.id, "size": "M"})
        assert quantity.json()["quantity"] == 8

    def test_size_without_stock_row(self, client, shopper, product):
        resp = add(client, product.id, "XL", 1)
        assert resp.status_code == 400
        assert "not available" in resp.json()["message"]

    def test_unknown_size_rejected(self, client, shopper, product):
        assert add(client, product.id, "XS", 1).status_code == 400

    def test_non_positive_quantity_rejected(self, client, shopper, product):
        assert add(client, product.id, "M", 0).status_code == 400

    def test_unknown_product(self, client, shopper, product):
        assert add(client, product.id + 100, "M", 1).status_code == 404

    def test_archived_product(self, client, shopper, make_product):
        archived = make_product(name="Old Tee", sizes={"M": 5}, is_archived=True)
        assert add(client, archived.id, "M", 1).status_code == 404

    def test_requires_session(self, anon_client, product):
        assert add(anon_client, product.id, "M", 1).status_code == 401


class TestRemoveItem:
    def test_partial_remove_decrements(self, client, shopper, product):
        line = add(client, product.id, "M", 3).json()["cartItem"]
        resp = client.post("/api/cart/remove", json={"cartItemId": line["cartItemId"], "quantity": 1})
        assert resp.status_code == 200
        assert resp.json()["cartItem"]["quantity"] == 2

    def test_remove_all_deletes_line(self, client, db, shopper, product):
        line = add(client, product.id, "M", 3).json()["cartItem"]
        resp = client.post("/api/cart/remove", json={"cartItemId": line["cartItemId"], "quantity": 3})
        assert resp.status_code == 200
        assert resp.json()["cartItem"] is None
        assert db.query(CartItem).count() == 0

    def test_remove_more_than_present(self, client, shopper, product):
        line = add(client, product.id, "M", 2).json()["cartItem"]
        resp = client.post("/api/cart/remove", json={"cartItemId": line["cartItemId"], "quantity": 3})
        assert resp.status_code == 400

    def test_remove_missing_line(self, client, shopper):
        assert client.post("/api/cart/remove", json={"cartItemId": 999}).status_code == 404

    def test_cannot_touch_another_users_line(self, client, shopper, product, signup_client):
        line = add(client, product.id, "M", 2).json()["cartItem"]
        other, _ = signup_client("other@emporium.io")
        assert other.post("/api/cart/remove", json={"cartItemId": line["cartItemId"]}).status_code == 404


class TestUpdateItem:
    def test_update_sets_exact_quantity(self, client, shopper, product):
        add(client, product.id, "M", 5)
        resp = client.post("/api/cart/update", json={"productId": product.id, "size": "M", "quantity": 2})
        assert resp.status_code == 200
        assert resp.json()["cartItem"]["quantity"] == 2

    def test_update_to_zero_deletes(self, client, db, shopper, product):
        add(client, product.id, "M", 5)
        resp = client.post("/api/cart/update", json={"productId": product.id, "size": "M", "quantity": 0})
        assert resp.status_code == 200
        assert db.query(CartItem).count() == 0

    def test_update_beyond_stock(self, client, shopper, product):
        add(client, product.id, "L", 1)
        resp = client.post("/api/cart/update", json={"productId": product.id, "size": "L", "quantity": 3})
        assert resp.status_code == 400

    def test_update_creates_missing_line(self, client, shopper, product):
        resp = client.post("/api/cart/update", json={"productId": product.id, "size": "L", "quantity": 2})
        assert resp.status_code == 200
        assert resp.json()["cartItem"]["quantity"] == 2


class TestGetCart:
    def test_absent_cart_is_not_found(self, client, shopper):
        resp = client.get("/api/cart")
        assert resp.status_code == 404
        assert resp.json()["message"] == "Cart not found"

    def test_emptied_cart_is_not_found(self, client, shopper, product):
        line = add(client, product.id, "M", 1).json()["cartItem"]
        client.post("/api/cart/remove", json={"cartItemId": line["cartItemId"]})
        assert client.get("/api/cart").status_code == 404

    def test_lines_carry_product_data_and_totals(self, client, shopper, product, make_product):
        hoodie = make_product(name="Hoodie", price="45.50", sizes={"S": 4})
        add(client, product.id, "M", 3)
        add(client, hoodie.id, "S", 2)

        body = client.get("/api/cart").json()
        lines = {line["name"]: line for line in body["items"]}
        assert lines["Logo Tee"]["totalPrice"] == 60.0
        assert lines["Hoodie"]["price"] == 45.5
        assert lines["Hoodie"]["totalPrice"] == 91.0
        assert lines["Hoodie"]["description"] == "Hoodie description"
        assert body["total"] == 151.0

    def test_cart_uses_live_price(self, client, db, shopper, product):
        add(client, product.id, "M", 2)
        product.price = 25
        db.commit()
        assert client.get("/api/cart").json()["total"] == 50.0


class TestGetQuantity:
    def test_zero_without_cart(self, client, shopper, product):
        resp = client.get("/api/cart/quantity", params={"productId": product.id, "size": "S"})
        assert resp.status_code == 200
        assert resp.json()["quantity"] == 0

    def test_reports_line_quantity(self, client, shopper, product):
        add(client, product.id, "M", 4)
        resp = client.get("/api/cart/quantity", params={"productId": product.id, "size": "M"})
        assert resp.json()["quantity"] == 4


def test_stock_is_not_reserved_by_cart(client, shopper, product, stock_of):
    add(client, product.id, "M", 4)
    assert stock_of(product.id, "M") == 10
