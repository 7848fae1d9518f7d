"""Test API endpoints."""

import sqlite3

import pytest

from catalog import db
from web.error_logging import get_error_logger

API = "/api/products"


class TestListEndpoints:
    """Test GET /all, /all/ids and /categories."""

    def test_all_returns_every_product(self, client, seeded):
        response = client.get(f"{API}/all")
        assert response.status_code == 200
        data = response.json
        assert data["success"] is True
        assert [p["_id"] for p in data["data"]] == [p["_id"] for p in seeded]

    def test_all_on_empty_catalog(self, client):
        response = client.get(f"{API}/all")
        assert response.status_code == 200
        assert response.json == {"success": True, "data": []}

    def test_ids_match_all_products(self, client, seeded):
        all_products = client.get(f"{API}/all").json["data"]
        response = client.get(f"{API}/all/ids")
        assert response.status_code == 200

        ids = response.json["data"]
        assert len(ids) == len(all_products)
        for entry in ids:
            assert set(entry) == {"_id"}
        assert {e["_id"] for e in ids} == {p["_id"] for p in all_products}

    def test_categories_one_entry_per_category(self, client, seeded):
        response = client.get(f"{API}/categories")
        assert response.status_code == 200

        summaries = response.json["data"]
        assert sorted(s["category"] for s in summaries) == ["earphones", "headphones", "speakers"]
        for summary in summaries:
            assert set(summary) <= {"_id", "slug", "category", "categoryImage"}

    def test_categories_representative_is_first_stored(self, client, seeded):
        summaries = {s["category"]: s for s in client.get(f"{API}/categories").json["data"]}
        assert summaries["headphones"]["_id"] == seeded[0]["_id"]
        assert summaries["headphones"]["categoryImage"] == seeded[0]["categoryImage"]
        assert summaries["speakers"]["slug"] == "zx9-speaker"


class TestCategoryEndpoints:
    """Test GET /<category>, /<category>/ids and /<category>/slugs."""

    @pytest.mark.parametrize("category", ["headphones", "Headphones", "HEADPHONES"])
    def test_category_lookup_is_case_insensitive(self, client, seeded, category):
        response = client.get(f"{API}/{category}")
        assert response.status_code == 200
        products = response.json["data"]
        assert len(products) == 3
        assert all(p["category"] == "headphones" for p in products)

    def test_unknown_category_returns_404(self, client, seeded):
        response = client.get(f"{API}/nonexistent-category")
        assert response.status_code == 404
        assert response.json == {
            "success": False,
            "data": "Product with category nonexistent-category not found",
        }

    def test_category_ids(self, client, seeded):
        response = client.get(f"{API}/Speakers/ids")
        assert response.status_code == 200
        assert response.json["data"] == [{"_id": seeded[3]["_id"]}, {"_id": seeded[4]["_id"]}]

    def test_category_ids_unknown_category(self, client, seeded):
        response = client.get(f"{API}/Turntables/ids")
        assert response.status_code == 404
        assert response.json["data"] == "Product with category turntables not found"

    def test_category_slugs(self, client, seeded):
        response = client.get(f"{API}/speakers/slugs")
        assert response.status_code == 200
        assert response.json["data"] == [{"slug": "zx9-speaker"}, {"slug": "zx7-speaker"}]

    def test_category_slugs_unknown_category(self, client, seeded):
        response = client.get(f"{API}/turntables/slugs")
        assert response.status_code == 404


class TestGetBySlug:
    """Test GET /?slug=..."""

    def test_missing_slug_returns_400(self, client, seeded):
        response = client.get(f"{API}/")
        assert response.status_code == 400
        assert response.json == {"success": False, "data": "Product slug is required"}

    def test_returns_stored_product_exactly(self, client, seeded):
        response = client.get(f"{API}/", query_string={"slug": "xx99-mark-two-headphones"})
        assert response.status_code == 200
        assert response.json == {"success": True, "data": seeded[0]}

    def test_unknown_slug_returns_404(self, client, seeded):
        response = client.get(f"{API}/", query_string={"slug": "does-not-exist"})
        assert response.status_code == 404
        assert response.json["success"] is False
        assert "does-not-exist" in response.json["data"]


class TestCreateProduct:
    """Test POST /"""

    def test_chair_scenario(self, client):
        response = client.post(f"{API}/", json={"name": "Chair", "category": "Furniture", "price": 50})
        assert response.status_code == 201
        chair = response.json["data"]
        assert len(chair["_id"]) == 24
        assert "slug" not in chair

        response = client.get(f"{API}/furniture")
        assert response.status_code == 200
        assert [p["_id"] for p in response.json["data"]] == [chair["_id"]]

        assert client.get(f"{API}/Furniture").status_code == 200
        assert client.get(f"{API}/nonexistent-category").status_code == 404

        response = client.delete(f"{API}/", query_string={"id": chair["_id"]})
        assert response.status_code == 200
        assert response.json["data"] == "Successfully deleted product: Chair"

        response = client.delete(f"{API}/", query_string={"id": chair["_id"]})
        assert response.status_code == 400

    def test_missing_name_returns_400(self, client):
        response = client.post(f"{API}/", json={"category": "speakers", "price": 10})
        assert response.status_code == 400
        assert response.json == {"success": False, "data": "Product name is required"}

    def test_no_body_returns_400(self, client):
        response = client.post(f"{API}/", data="not json", content_type="application/json")
        assert response.status_code == 400

    def test_missing_price_rejected_by_schema(self, client):
        response = client.post(f"{API}/", json={"name": "Stand", "category": "speakers"})
        assert response.status_code == 400
        assert response.json["success"] is False
        assert "price" in response.json["data"]

    def test_uncastable_price_rejected(self, client):
        response = client.post(f"{API}/", json={"name": "Stand", "category": "speakers", "price": "cheap"})
        assert response.status_code == 400

    @pytest.mark.parametrize("price", ["NaN", "Infinity", "-Infinity", '"nan"', '"1e400"'])
    def test_non_finite_price_rejected(self, client, price):
        body = '{"name": "Chair", "category": "Furniture", "price": %s}' % price
        response = client.post(f"{API}/", data=body, content_type="application/json")
        assert response.status_code == 400
        assert response.json["data"] == "Cast to Number failed for `price`"

        assert client.get(f"{API}/furniture").status_code == 404

    def test_created_product_retrievable_by_slug(self, client, sample_products):
        created = client.post(f"{API}/", json=sample_products[0]).json["data"]
        fetched = client.get(f"{API}/", query_string={"slug": sample_products[0]["slug"]}).json["data"]
        assert fetched == created

    def test_owner_absent_without_auth(self, client):
        created = client.post(f"{API}/", json={"name": "Chair", "category": "furniture", "price": 50})
        assert "owner" not in created.json["data"]


class TestUpdateProduct:
    """Test PUT /?_id=..."""

    def test_missing_id_returns_400(self, client, seeded):
        response = client.put(f"{API}/", json={"name": "X"})
        assert response.status_code == 400
        assert response.json["data"] == "Product id is required"

    def test_unknown_id_returns_404(self, client, seeded):
        response = client.put(f"{API}/", query_string={"_id": "0" * 24}, json={"name": "X"})
        assert response.status_code == 404
        assert response.json["success"] is False

    def test_update_name_leaves_other_fields(self, client, seeded):
        original = seeded[0]
        response = client.put(f"{API}/", query_string={"_id": original["_id"]}, json={"name": "X"})
        assert response.status_code == 201
        assert set(response.json) == {"success", "board"}
        assert response.json["success"] is True
        assert response.json["board"]["name"] == "X"

        fetched = client.get(f"{API}/", query_string={"slug": original["slug"]}).json["data"]
        assert fetched == {**original, "name": "X"}

    def test_non_updatable_fields_ignored(self, client, seeded):
        original = seeded[1]
        response = client.put(
            f"{API}/",
            query_string={"_id": original["_id"]},
            json={"price": 1, "category": "speakers"},
        )
        assert response.status_code == 201
        assert response.json["board"] == original

    def test_replace_phase_list(self, client, seeded):
        response = client.put(
            f"{API}/",
            query_string={"_id": seeded[2]["_id"]},
            json={"phaseList": ["todo", "doing", "done"]},
        )
        assert response.json["board"]["phaseList"] == ["todo", "doing", "done"]


class TestDeleteProduct:
    """Test DELETE /?id=..."""

    def test_missing_id_returns_400(self, client, seeded):
        response = client.delete(f"{API}/")
        assert response.status_code == 400
        assert response.json["data"] == "Product id is required"

    def test_delete_twice(self, client, seeded):
        target = seeded[5]
        first = client.delete(f"{API}/", query_string={"id": target["_id"]})
        assert first.status_code == 200
        assert first.json == {"success": True, "data": "Successfully deleted product: YX1 Wireless Earphones"}

        second = client.delete(f"{API}/", query_string={"id": target["_id"]})
        assert second.status_code == 400
        assert second.json["success"] is False

        assert client.get(f"{API}/earphones").status_code == 404


class TestTasks:
    """Test the /tasks sub-resource."""

    def _create_task(self, client, product_id, **fields):
        body = {"title": "Photograph product", **fields}
        return client.post(f"{API}/tasks", query_string={"id": product_id}, json=body)

    def test_create_task_on_missing_product(self, client, seeded):
        response = self._create_task(client, "f" * 24)
        assert response.status_code == 404

    def test_create_task_with_empty_title(self, client, seeded):
        response = client.post(f"{API}/tasks", query_string={"id": seeded[0]["_id"]}, json={"title": ""})
        assert response.status_code == 400
        assert response.json["data"] == "Task title is required"

    def test_create_task_without_product_id(self, client, seeded):
        response = client.post(f"{API}/tasks", json={"title": "x"})
        assert response.status_code == 400
        assert response.json["data"] == "Product id is required"

    def test_create_task(self, client, seeded):
        response = self._create_task(client, seeded[0]["_id"], status="todo")
        assert response.status_code == 201
        assert set(response.json) == {"success", "board"}
        tasks = response.json["board"]["tasks"]
        assert len(tasks) == 1
        assert tasks[0]["title"] == "Photograph product"
        assert tasks[0]["status"] == "todo"
        assert len(tasks[0]["_id"]) == 24

    def test_update_task(self, client, seeded):
        product = self._create_task(client, seeded[0]["_id"]).json["board"]
        task_id = product["tasks"][0]["_id"]

        response = client.put(
            f"{API}/tasks",
            query_string={"boardId": product["_id"], "taskId": task_id},
            json={"status": "done"},
        )
        assert response.status_code == 200
        assert response.json == {"data": "Task successfully updated"}

        fetched = client.get(f"{API}/", query_string={"slug": product["slug"]}).json["data"]
        assert fetched["tasks"][0]["status"] == "done"
        assert fetched["tasks"][0]["title"] == "Photograph product"

    def test_update_unknown_task_returns_404(self, client, seeded):
        response = client.put(
            f"{API}/tasks",
            query_string={"boardId": seeded[0]["_id"], "taskId": "a" * 24},
            json={"status": "done"},
        )
        assert response.status_code == 404

    @pytest.mark.parametrize("query", [{}, {"boardId": "abc"}, {"taskId": "abc"}])
    def test_task_ids_required(self, client, query):
        assert client.put(f"{API}/tasks", query_string=query, json={}).status_code == 400
        assert client.delete(f"{API}/tasks", query_string=query).status_code == 400

    def test_delete_task(self, client, seeded):
        product = self._create_task(client, seeded[0]["_id"]).json["board"]
        task_id = product["tasks"][0]["_id"]
        query = {"boardId": product["_id"], "taskId": task_id}

        response = client.delete(f"{API}/tasks", query_string=query)
        assert response.status_code == 200
        assert response.json == {"data": f"Task {task_id} successfully deleted"}

        assert client.delete(f"{API}/tasks", query_string=query).status_code == 404


class TestStoreFailures:
    """Store errors are logged and mapped to 500."""

    def test_database_error_returns_500(self, client, monkeypatch):
        def boom(*args, **kwargs):
            raise sqlite3.OperationalError("database is locked")

        monkeypatch.setattr(db, "find_all", boom)
        response = client.get(f"{API}/all")
        assert response.status_code == 500
        assert response.json == {"success": False, "data": "Internal server error"}

        errors = get_error_logger().get_errors(error_type="database_error")
        assert errors[0]["error_message"] == "database is locked"
        assert errors[0]["operation"] == "get_all_products"

    def test_unexpected_error_returns_500(self, client, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(db, "find_by_slug", boom)
        response = client.get(f"{API}/", query_string={"slug": "x"})
        assert response.status_code == 500

        errors = get_error_logger().get_errors(error_type="unexpected_error")
        assert errors[0]["error_message"] == "boom"
        assert errors[0]["context"]["args"] == {"slug": "x"}

    def test_validation_errors_are_recorded(self, client):
        client.post(f"{API}/", json={"name": "Stand"})
        errors = get_error_logger().get_errors(error_type="validation_error")
        assert errors[0]["operation"] == "create_product"

    def test_errors_recorded_in_each_apps_database(self, make_app, tmp_path):
        first = make_app()
        second = make_app(DB_PATH=str(tmp_path / "second.db"))

        first.test_client().post(f"{API}/", json={"name": "Stand"})

        assert len(first.extensions["error_logger"].get_errors()) == 1
        assert second.extensions["error_logger"].get_errors() == []
        with first.app_context():
            assert get_error_logger() is first.extensions["error_logger"]


class TestResponseFormat:
    """Framework-level errors use the same envelope."""

    def test_wrong_method_returns_json_405(self, client):
        response = client.post(f"{API}/all")
        assert response.status_code == 405
        assert response.json["success"] is False

    def test_unknown_path_returns_json_404(self, client):
        response = client.get("/nope")
        assert response.status_code == 404
        assert response.json["success"] is False

    def test_request_id_header(self, client):
        response = client.get(f"{API}/all", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"
        assert "application/json" in response.content_type
