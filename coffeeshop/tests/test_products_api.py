import pytest


class TestProductCatalog:
    """Product CRUD, filtering and derived fields"""

    def test_discounted_price_for_latte(self, client, create_product):
        product = create_product(name="Latte", price=100000, category="coffee", discount=10)
        assert product["discountedPrice"] == 90000
        assert product["hasDiscount"] is True

    def test_discounted_price_without_discount(self, create_product):
        product = create_product(price=42000)
        assert product["discountedPrice"] == 42000
        assert product["hasDiscount"] is False
        assert product["averageRating"] == 0
        assert product["salesCount"] == 0

    def test_create_requires_name_price_and_category(self, client):
        response = client.post("/api/products", json={"name": "No price"})
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert "price" in body["message"]

    def test_create_rejects_out_of_range_discount(self, client):
        response = client.post("/api/products", json={"name": "X", "price": 10, "category": "tea", "discount": 150})
        assert response.status_code == 400

    def test_get_missing_product(self, client):
        response = client.get("/api/products/999")
        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "message": "Product with ID 999 not found",
            "error": "NotFoundError",
        }

    def test_list_filters(self, client, create_product):
        create_product(name="Latte", category="coffee", discount=10)
        create_product(name="Green tea", category="tea")
        create_product(name="Mocha", category="coffee")

        response = client.get("/api/products", params={"category": "coffee"})
        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 2
        assert {p["name"] for p in body["data"]} == {"Latte", "Mocha"}

        response = client.get("/api/products", params={"hasDiscount": "true"})
        assert [p["name"] for p in response.json()["data"]] == ["Latte"]

        response = client.get("/api/products", params={"hasDiscount": "false"})
        assert {p["name"] for p in response.json()["data"]} == {"Green tea", "Mocha"}

    def test_list_sorting(self, client, create_product):
        create_product(name="B", price=300)
        create_product(name="A", price=100)
        create_product(name="C", price=200)

        response = client.get("/api/products", params={"sortBy": "price", "sortOrder": "asc"})
        assert [p["name"] for p in response.json()["data"]] == ["A", "C", "B"]

        response = client.get("/api/products", params={"sortBy": "name", "sortOrder": "desc"})
        assert [p["name"] for p in response.json()["data"]] == ["C", "B", "A"]

    def test_list_rejects_unknown_sort_field(self, client, create_product):
        create_product()
        response = client.get("/api/products", params={"sortBy": "colour"})
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid sort field: colour"

    def test_list_pagination(self, client, create_product):
        for i in range(5):
            create_product(name=f"P{i}", price=100 + i)

        response = client.get("/api/products", params={"sortBy": "price", "sortOrder": "asc", "page": 2, "limit": 2})
        body = response.json()
        assert [p["name"] for p in body["data"]] == ["P2", "P3"]
        assert body["pagination"] == {
            "currentPage": 2,
            "totalPages": 3,
            "totalProducts": 5,
            "hasNext": True,
            "hasPrev": True,
        }

    def test_put_replaces_and_patch_merges(self, client, create_product):
        product = create_product(name="Latte", price=100, description="milky")

        response = client.patch(f"/api/products/{product['id']}", json={"price": 120})
        assert response.status_code == 200
        patched = response.json()["data"]
        assert patched["price"] == 120
        assert patched["description"] == "milky"

        response = client.put(f"/api/products/{product['id']}", json={"name": "Flat white", "price": 130, "category": "coffee"})
        assert response.status_code == 200
        replaced = response.json()["data"]
        assert replaced["name"] == "Flat white"
        assert replaced["description"] is None

    def test_update_missing_product(self, client):
        response = client.patch("/api/products/404", json={"price": 1})
        assert response.status_code == 404
        response = client.put("/api/products/404", json={"name": "X", "price": 1, "category": "c"})
        assert response.status_code == 404

    def test_delete_is_soft(self, client, create_product, uow_factory):
        product = create_product()
        response = client.delete(f"/api/products/{product['id']}")
        assert response.status_code == 200
        assert response.json()["success"] is True

        assert client.get(f"/api/products/{product['id']}").status_code == 404
        assert client.get("/api/products").json()["count"] == 0
        assert client.delete(f"/api/products/{product['id']}").status_code == 404

        with uow_factory() as uow:
            stored = uow.products.find_by_id(product["id"])
        assert stored is not None
        assert stored.is_active is False

    def test_deleted_product_cannot_be_edited_or_restored(self, client, create_product):
        product = create_product()
        client.delete(f"/api/products/{product['id']}")

        response = client.put(
            f"/api/products/{product['id']}",
            json={"name": "Back", "price": 1, "category": "coffee", "isActive": True},
        )
        assert response.status_code == 404
        response = client.patch(f"/api/products/{product['id']}", json={"price": 2, "isActive": True})
        assert response.status_code == 404
        assert client.get(f"/api/products/{product['id']}").status_code == 404

    def test_timestamps_are_utc(self, create_product):
        product = create_product()
        assert product["createdAt"].endswith("Z")
        assert product["updatedAt"].endswith("Z")


class TestProductRatings:
    """Rating submission and running aggregates"""

    def test_same_user_rerating_replaces(self, client, create_product):
        product = create_product()
        url = f"/api/products/{product['id']}/rate"

        assert client.post(url, json={"rating": 2, "userId": 7}).status_code == 200
        response = client.post(url, json={"rating": 5, "userId": 7})
        assert response.status_code == 200
        assert response.json()["data"]["ratingCount"] == 1
        assert response.json()["data"]["averageRating"] == 5

        ratings = client.get(f"/api/products/{product['id']}/ratings").json()["data"]
        assert ratings["ratingCount"] == 1
        assert ratings["averageRating"] == 5
        assert len(ratings["ratings"]) == 1
        assert ratings["ratings"][0]["userId"] == 7

    def test_new_user_adds_rating(self, client, create_product):
        product = create_product()
        url = f"/api/products/{product['id']}/rate"
        client.post(url, json={"rating": 4, "userId": 1})
        response = client.post(url, json={"rating": 3, "userId": 2, "comment": "ok"})
        data = response.json()["data"]
        assert data["ratingCount"] == 2
        assert data["averageRating"] == 3.5

    @pytest.mark.parametrize("rating", [0, 6, None])
    def test_rating_out_of_range(self, client, create_product, rating):
        product = create_product()
        response = client.post(f"/api/products/{product['id']}/rate", json={"rating": rating, "userId": 1})
        assert response.status_code == 400
        assert response.json()["message"] == "Rating must be between 1 and 5"

    def test_rating_requires_user(self, client, create_product):
        product = create_product()
        response = client.post(f"/api/products/{product['id']}/rate", json={"rating": 4})
        assert response.status_code == 400
        assert response.json()["message"] == "User ID is required"

    def test_bearer_token_identifies_rater(self, client, create_product, register_user):
        user_id, headers = register_user()
        product = create_product()
        client.post(f"/api/products/{product['id']}/rate", json={"rating": 4, "userId": 999}, headers=headers)
        ratings = client.get(f"/api/products/{product['id']}/ratings").json()["data"]["ratings"]
        assert ratings[0]["userId"] == user_id


class TestDerivedLists:
    """Discounted, top rated, best selling and by-category lists"""

    def test_increment_sales(self, client, create_product):
        product = create_product()
        url = f"/api/products/{product['id']}/increment-sales"
        assert client.post(url).json()["data"]["salesCount"] == 1
        assert client.post(url, json={"quantity": 3}).json()["data"]["salesCount"] == 4

    def test_discounted_sorted_by_discount(self, client, create_product):
        create_product(name="Small", discount=5)
        create_product(name="None")
        create_product(name="Big", discount=30)
        body = client.get("/api/products/discounted/all").json()
        assert [p["name"] for p in body["data"]] == ["Big", "Small"]
        assert body["count"] == 2

    def test_top_rated_ties_broken_by_rating_count(self, client, create_product):
        few = create_product(name="Few")
        many = create_product(name="Many")
        create_product(name="Unrated")
        client.post(f"/api/products/{few['id']}/rate", json={"rating": 5, "userId": 1})
        client.post(f"/api/products/{many['id']}/rate", json={"rating": 5, "userId": 1})
        client.post(f"/api/products/{many['id']}/rate", json={"rating": 5, "userId": 2})

        names = [p["name"] for p in client.get("/api/products/top-rated/all").json()["data"]]
        assert names == ["Many", "Few"]

    def test_best_selling_respects_limit(self, client, create_product):
        for name, sales in (("A", 1), ("B", 5), ("C", 3), ("D", 0)):
            product = create_product(name=name)
            if sales:
                client.post(f"/api/products/{product['id']}/increment-sales", json={"quantity": sales})

        names = [p["name"] for p in client.get("/api/products/best-selling/all", params={"limit": 2}).json()["data"]]
        assert names == ["B", "C"]

    def test_products_by_category(self, client, create_product):
        create_product(name="Latte", category="coffee")
        create_product(name="Chai", category="tea")
        body = client.get("/api/products/category/tea").json()
        assert [p["name"] for p in body["data"]] == ["Chai"]
