"""Product catalog document store package."""

__version__ = "0.1.0"

# Re-export main components for convenient imports
from catalog.config import DB_PATH
from catalog.db import (
    create_product,
    delete_product,
    find_all,
    find_all_projected,
    find_by_category,
    find_by_slug,
    get_product_count,
    group_first_by_category,
    init_db,
    push_task,
    remove_task,
    set_task_fields,
    update_product,
)
from catalog.models import Product, Task, ValidationError

__all__ = [
    # Version
    "__version__",
    # Config
    "DB_PATH",
    # Models
    "Product",
    "Task",
    "ValidationError",
    # Store
    "init_db",
    "find_all",
    "find_by_category",
    "find_by_slug",
    "find_all_projected",
    "group_first_by_category",
    "create_product",
    "update_product",
    "delete_product",
    "push_task",
    "set_task_fields",
    "remove_task",
    "get_product_count",
]
