"""Route table for the products API.

Routes are declared as data so the mounted surface can be read in one place.
``ACTIVE_ROUTES`` are always mounted. ``OPTIONAL_ROUTES`` (product and task
writes, category slugs) are only mounted when ``MOUNT_OPTIONAL_ROUTES`` is
enabled. A route marked ``protected`` is wrapped in ``web.auth.protect``.
"""

from dataclasses import dataclass
from typing import Callable, List, Tuple

from flask import Blueprint

from web import products
from web.auth import protect

__all__ = ["Route", "ACTIVE_ROUTES", "OPTIONAL_ROUTES", "mounted_routes", "build_blueprint"]


@dataclass(frozen=True)
class Route:
    rule: str
    methods: Tuple[str, ...]
    view: Callable
    protected: bool = False

    @property
    def endpoint(self) -> str:
        return self.view.__name__

    def describe(self) -> str:
        lock = " [protected]" if self.protected else ""
        return f"{','.join(self.methods):<6} {self.rule} -> {self.endpoint}{lock}"


# Static rules ("/all", "/categories") take precedence over "/<category>"
ACTIVE_ROUTES: Tuple[Route, ...] = (
    Route("/", ("GET",), products.get_product),
    Route("/all", ("GET",), products.get_all_products),
    Route("/all/ids", ("GET",), products.get_ids),
    Route("/categories", ("GET",), products.get_categories_products),
    Route("/<category>/ids", ("GET",), products.get_category_ids),
    Route("/<category>", ("GET",), products.get_products_by_category),
)

OPTIONAL_ROUTES: Tuple[Route, ...] = (
    Route("/", ("POST",), products.create_product, protected=True),
    Route("/", ("PUT",), products.update_product, protected=True),
    Route("/", ("DELETE",), products.delete_product, protected=True),
    Route("/tasks", ("POST",), products.create_task, protected=True),
    Route("/tasks", ("PUT",), products.update_task, protected=True),
    Route("/tasks", ("DELETE",), products.delete_task, protected=True),
    Route("/<category>/slugs", ("GET",), products.get_category_slugs),
)


def mounted_routes(mount_optional: bool = False) -> List[Route]:
    """Return the routes a blueprint built with ``mount_optional`` serves."""
    routes = list(ACTIVE_ROUTES)
    if mount_optional:
        routes.extend(OPTIONAL_ROUTES)
    return routes


def build_blueprint(url_prefix: str = "/api/products", mount_optional: bool = False) -> Blueprint:
    """Create the products blueprint from the route table."""
    blueprint = Blueprint("products", __name__, url_prefix=url_prefix)

    for route in mounted_routes(mount_optional):
        view = protect(route.view) if route.protected else route.view
        blueprint.add_url_rule(
            route.rule,
            endpoint=route.endpoint,
            view_func=view,
            methods=list(route.methods),
        )

    return blueprint
