"""Shared test fixtures for the web test suite."""

import copy

import pytest

from catalog.db import create_product, init_db

API = "/api/products"


@pytest.fixture
def db_path(tmp_path):
    """Return path to a fresh catalog database."""
    path = str(tmp_path / "catalog.db")
    init_db(path)
    return path


def _make_app(db_path, tmp_path, **overrides):
    from web.app import create_app

    config = {
        "TESTING": True,
        "DB_PATH": db_path,
        "URL_PREFIX": API,
        "MOUNT_OPTIONAL_ROUTES": True,
        "API_TOKENS": {},
        "LOG_TO_FILE": False,
        "LOG_DIR": str(tmp_path / "logs"),
    }
    config.update(overrides)
    return create_app(config)


@pytest.fixture
def app(db_path, tmp_path):
    """App with every route mounted and auth disabled."""
    return _make_app(db_path, tmp_path)


@pytest.fixture
def make_app(db_path, tmp_path):
    """Factory for apps with custom config overrides."""
    def factory(**overrides):
        return _make_app(db_path, tmp_path, **overrides)
    return factory


@pytest.fixture
def client(app):
    """Create Flask test client."""
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture
def sample_products():
    """Product payloads across three categories."""
    image = {
        "mobile": "./assets/product-xx99-mark-two-headphones/mobile/image-product.jpg",
        "tablet": "./assets/product-xx99-mark-two-headphones/tablet/image-product.jpg",
        "desktop": "./assets/product-xx99-mark-two-headphones/desktop/image-product.jpg",
    }
    return copy.deepcopy([
        {
            "slug": "xx99-mark-two-headphones",
            "name": "XX99 Mark II Headphones",
            "image": image,
            "category": "headphones",
            "categoryImage": image,
            "isNew": True,
            "price": 2999,
            "description": "The new XX99 Mark II headphones is the pinnacle of pristine audio.",
            "features": "Featuring a genuine leather head strap and premium earcups.",
            "includes": [
                {"quantity": 1, "item": "Headphone unit"},
                {"quantity": 2, "item": "Replacement earcups"},
            ],
            "gallery": [image, image, image],
            "others": [
                {"slug": "xx99-mark-one-headphones", "name": "XX99 Mark I", "image": image},
                {"slug": "zx9-speaker", "name": "ZX9 Speaker", "image": image},
            ],
        },
        {
            "slug": "xx99-mark-one-headphones",
            "name": "XX99 Mark I Headphones",
            "category": "headphones",
            "isNew": False,
            "price": 1750,
        },
        {
            "slug": "xx59-headphones",
            "name": "XX59 Headphones",
            "category": "headphones",
            "price": 899,
        },
        {
            "slug": "zx9-speaker",
            "name": "ZX9 Speaker",
            "category": "speakers",
            "categoryImage": {"desktop": "./assets/shared/desktop/image-category-thumbnail-speakers.png"},
            "isNew": True,
            "price": 4500,
        },
        {
            "slug": "zx7-speaker",
            "name": "ZX7 Speaker",
            "category": "speakers",
            "price": 3500,
        },
        {
            "slug": "yx1-earphones",
            "name": "YX1 Wireless Earphones",
            "category": "earphones",
            "isNew": True,
            "price": 599,
        },
    ])


@pytest.fixture
def seeded(db_path, sample_products):
    """Store the sample products and return the stored documents."""
    return [create_product(db_path, product) for product in sample_products]
