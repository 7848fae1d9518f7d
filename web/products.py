"""Product handlers.

One view per capability. Each view checks its required inputs, issues a
single store call and maps the outcome to a status code and JSON body.

Response shapes:
- success: ``{"success": true, "data": ...}``; update-product and create-task
  return the product under ``"board"``; task update/delete return
  ``{"data": message}``
- 4xx: ``{"success": false, "data": message}``
- store failure: logged, ``500 {"success": false, "data": "Internal server error"}``
"""

import functools
import logging
import sqlite3
from typing import Any, Callable, Dict, Optional, Tuple

from flask import Response, current_app, g, jsonify, request

from catalog import db
from catalog.config import UPDATABLE_FIELDS
from catalog.models import ValidationError, normalize_category
from web.auth import Identity
from web.error_logging import log_database_error, log_unexpected_error, log_validation_error

__all__ = [
    "get_all_products",
    "get_products_by_category",
    "get_product",
    "get_ids",
    "get_category_ids",
    "get_category_slugs",
    "get_categories_products",
    "create_product",
    "update_product",
    "delete_product",
    "create_task",
    "update_task",
    "delete_task",
]

logger = logging.getLogger(__name__)

ViewResult = Tuple[Response, int]


def _db_path() -> str:
    return current_app.config["DB_PATH"]


def _json_body() -> Dict[str, Any]:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _ok(data: Any, status: int = 200) -> ViewResult:
    return jsonify({"success": True, "data": data}), status


def _fail(message: str, status: int) -> ViewResult:
    return jsonify({"success": False, "data": message}), status


def _error_context() -> Dict[str, Any]:
    return {"method": request.method, "path": request.path, "args": request.args.to_dict()}


def handles_store_errors(view: Callable[..., ViewResult]) -> Callable[..., ViewResult]:
    """Map schema failures to 400 and any other failure to a logged 500."""

    @functools.wraps(view)
    def wrapper(*args, **kwargs) -> ViewResult:
        request_id = getattr(g, "request_id", None)
        try:
            return view(*args, **kwargs)
        except ValidationError as e:
            log_validation_error(
                str(e), request_id=request_id, operation=view.__name__, context=_error_context()
            )
            return _fail(str(e), 400)
        except sqlite3.Error as e:
            logger.exception(f"Store error in {view.__name__}")
            log_database_error(
                str(e), request_id=request_id, operation=view.__name__, context=_error_context()
            )
            return _fail("Internal server error", 500)
        except Exception as e:
            logger.exception(f"Unexpected error in {view.__name__}")
            log_unexpected_error(
                str(e), request_id=request_id, operation=view.__name__, context=_error_context()
            )
            return _fail("Internal server error", 500)

    return wrapper


# ---------- READS ----------


@handles_store_errors
def get_all_products() -> ViewResult:
    return _ok(db.find_all(_db_path()))


@handles_store_errors
def get_products_by_category(category: str) -> ViewResult:
    products = db.find_by_category(_db_path(), normalize_category(category))
    if not products:
        return _fail(f"Product with category {category} not found", 404)
    return _ok(products)


@handles_store_errors
def get_product() -> ViewResult:
    slug = request.args.get("slug")
    if not slug:
        return _fail("Product slug is required", 400)

    product = db.find_by_slug(_db_path(), slug)
    if product is None:
        return _fail(f"Product with slug {slug} not found", 404)
    return _ok(product)


@handles_store_errors
def get_ids() -> ViewResult:
    return _ok(db.find_all_projected(_db_path(), ["_id"]))


@handles_store_errors
def get_category_ids(category: str) -> ViewResult:
    lower_category = normalize_category(category)
    products = db.find_all_projected(_db_path(), ["_id"], category=lower_category)
    if not products:
        return _fail(f"Product with category {lower_category} not found", 404)
    return _ok(products)


@handles_store_errors
def get_category_slugs(category: str) -> ViewResult:
    lower_category = normalize_category(category)
    products = db.find_all_projected(_db_path(), ["slug"], category=lower_category)
    if not products:
        return _fail(f"Product with category {lower_category} not found", 404)
    return _ok(products)


@handles_store_errors
def get_categories_products() -> ViewResult:
    """One representative product per category, for category listings."""
    return _ok(db.group_first_by_category(_db_path()))


# ---------- PRODUCT WRITES ----------


@handles_store_errors
def create_product(identity: Optional[Identity] = None) -> ViewResult:
    """Create a product; the caller's identity, if any, is stamped as owner."""
    body = _json_body()
    if not body.get("name"):
        return _fail("Product name is required", 400)

    product = db.create_product(
        _db_path(), body, owner=identity.id if identity is not None else None
    )
    logger.info(f"Created product {product['_id']} ({product['name']})")
    return _ok(product, 201)


@handles_store_errors
def update_product(identity: Optional[Identity] = None) -> ViewResult:
    product_id = request.args.get("_id")
    if not product_id:
        return _fail("Product id is required", 400)

    body = _json_body()
    fields = {key: body[key] for key in UPDATABLE_FIELDS if key in body}

    product = db.update_product(_db_path(), product_id, fields)
    if product is None:
        return _fail(f"Product with id {product_id} not found", 404)
    return jsonify({"success": True, "board": product}), 201


@handles_store_errors
def delete_product(identity: Optional[Identity] = None) -> ViewResult:
    product_id = request.args.get("id")
    if not product_id:
        return _fail("Product id is required", 400)

    product = db.delete_product(_db_path(), product_id)
    if product is None:
        # Reported as 400, not 404
        return _fail(f"Product with id {product_id} not found", 400)

    logger.info(f"Deleted product {product_id} ({product['name']})")
    return _ok(f"Successfully deleted product: {product['name']}")


# ---------- TASKS ----------


@handles_store_errors
def create_task(identity: Optional[Identity] = None) -> ViewResult:
    product_id = request.args.get("id")
    if not product_id:
        return _fail("Product id is required", 400)

    body = _json_body()
    if not body.get("title"):
        return _fail("Task title is required", 400)

    product = db.push_task(_db_path(), product_id, body)
    if product is None:
        return _fail(f"Product with id {product_id} not found", 404)
    return jsonify({"success": True, "board": product}), 201


@handles_store_errors
def update_task(identity: Optional[Identity] = None) -> ViewResult:
    product_id = request.args.get("boardId")
    task_id = request.args.get("taskId")
    if not product_id or not task_id:
        return _fail("Product and task id are required", 400)

    matched = db.set_task_fields(_db_path(), product_id, task_id, _json_body())
    if not matched:
        return _fail(f"Product with id {product_id} or task with id {task_id} not found", 404)
    return jsonify({"data": "Task successfully updated"}), 200


@handles_store_errors
def delete_task(identity: Optional[Identity] = None) -> ViewResult:
    product_id = request.args.get("boardId")
    task_id = request.args.get("taskId")
    if not product_id or not task_id:
        return _fail("Product and task id are required", 400)

    removed = db.remove_task(_db_path(), product_id, task_id)
    if not removed:
        return _fail(f"Task with id {task_id} not found", 404)
    return jsonify({"data": f"Task {task_id} successfully deleted"}), 200
