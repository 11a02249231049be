"""购物车与商品路由单元测试"""
from unittest.mock import Mock

from storefront.core.dependencies import get_cart_service
from storefront.main import app


class TestCartRouter:
    """购物车路由测试类"""

    def test_empty_cart(self, client, customer, auth_headers):
        response = client.get("/api/cart", headers=auth_headers(customer))

        assert response.status_code == 200
        assert response.json()["cart"] == {"items": [], "subtotal": 0, "item_count": 0}

    def test_add_update_remove(self, client, customer, products, auth_headers):
        headers = auth_headers(customer)
        mango_id = products["mango"].id

        response = client.post("/api/cart/items", json={"product_id": mango_id, "quantity": 2}, headers=headers)
        assert response.status_code == 200
        cart = response.json()["cart"]
        assert cart["item_count"] == 2
        assert cart["subtotal"] == 2000
        assert cart["items"][0]["product"]["name"] == "Alphonso Mango"

        response = client.put(f"/api/cart/items/{mango_id}", json={"quantity": 3}, headers=headers)
        assert response.json()["cart"]["items"][0]["quantity"] == 3

        response = client.delete(f"/api/cart/items/{mango_id}", headers=headers)
        assert response.json()["cart"]["items"] == []

    def test_add_exceeding_stock(self, client, customer, products, auth_headers):
        response = client.post(
            "/api/cart/items",
            json={"product_id": products["honey"].id, "quantity": 5},
            headers=auth_headers(customer),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "InsufficientStockError"

    def test_add_invalid_quantity(self, client, customer, products, auth_headers):
        response = client.post(
            "/api/cart/items",
            json={"product_id": products["mango"].id, "quantity": 0},
            headers=auth_headers(customer),
        )

        assert response.status_code == 422
        assert response.json()["success"] is False

    def test_remove_missing_item(self, client, customer, auth_headers):
        response = client.delete("/api/cart/items/5", headers=auth_headers(customer))

        assert response.status_code == 404
        assert response.json()["message"] == "Item not found in cart"

    def test_clear_cart(self, client, customer, products, fill_cart, auth_headers):
        fill_cart(customer, (products["mango"], 1), (products["honey"], 1))

        response = client.delete("/api/cart", headers=auth_headers(customer))

        assert response.status_code == 200
        assert response.json()["cart"]["items"] == []

    def test_cart_requires_token(self, client):
        response = client.get("/api/cart")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_cart_unknown_exception(self, client, customer, auth_headers):
        service_mock = Mock()
        service_mock.get_cart.side_effect = RuntimeError("连接断开")
        app.dependency_overrides[get_cart_service] = lambda: service_mock

        response = client.get("/api/cart", headers=auth_headers(customer))

        assert response.status_code == 500
        assert response.json()["message"] == "Error retrieving cart"


class TestProductRouter:
    """商品路由测试类"""

    def test_list_products(self, client, products):
        response = client.get("/api/products")

        assert response.status_code == 200
        assert [p["sku"] for p in response.json()["products"]] == ["MANGO-1KG", "HONEY-500"]

    def test_get_stock(self, client, products, mock_redis):
        response = client.get(f"/api/products/{products['honey'].id}/stock")

        assert response.status_code == 200
        assert response.json()["stock"] == 2
        mock_redis.setex.assert_called_once()

    def test_get_missing_product(self, client):
        response = client.get("/api/products/999")
        assert response.status_code == 404

    def test_batch_stock(self, client, products, mock_redis):
        mock_redis.mget.return_value = [None, None]

        response = client.post(
            "/api/products/stock/batch",
            json={"product_ids": [products["mango"].id, 999]},
        )

        assert response.status_code == 200
        assert response.json()["data"] == {str(products["mango"].id): 10, "999": 0}

    def test_batch_stock_too_many_ids(self, client):
        response = client.post("/api/products/stock/batch", json={"product_ids": list(range(1, 102))})
        assert response.status_code == 422

    def test_admin_create_product_and_set_stock(self, client, admin, auth_headers):
        headers = auth_headers(admin)

        response = client.post(
            "/api/products",
            json={"sku": "GHEE-1L", "name": "Desi Ghee", "price": 650, "stock": 4},
            headers=headers,
        )
        assert response.status_code == 201
        product_id = response.json()["product"]["id"]

        response = client.put(f"/api/products/{product_id}/stock", json={"stock": 12}, headers=headers)
        assert response.status_code == 200
        assert response.json()["product"]["stock"] == 12

    def test_set_stock_forbidden_for_customers(self, client, customer, products, auth_headers):
        response = client.put(
            f"/api/products/{products['mango'].id}/stock",
            json={"stock": 100},
            headers=auth_headers(customer),
        )
        assert response.status_code == 403
