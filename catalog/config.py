"""Configuration and constants for the product store."""

import os
from pathlib import Path
from typing import Dict, Tuple

__all__ = [
    "DB_PATH",
    "IMAGE_VARIANTS",
    "REQUIRED_FIELDS",
    "UPDATABLE_FIELDS",
    "TASK_FIELDS",
    "CATEGORY_SUMMARY_FIELDS",
    "PROJECTABLE_FIELDS",
]

# Project root (parent of 'catalog' directory)
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Output paths - absolute so the CLI and the web app share one database
DB_PATH = os.getenv("CATALOG_DB_PATH", str(PROJECT_ROOT / "data" / "catalog.db"))


# =============================================================================
# Product Schema
# =============================================================================
# The stored document mirrors the product JSON served by the API. Field names
# keep their camelCase spelling so documents round-trip unchanged.

# Each image object carries up to three renditions
IMAGE_VARIANTS: Tuple[str, ...] = ("mobile", "tablet", "desktop")

REQUIRED_FIELDS: Tuple[str, ...] = ("name", "category", "price")

# Fields the update operation replaces wholesale
UPDATABLE_FIELDS: Tuple[str, ...] = ("name", "phaseList", "tasks")

# Fields a task update may overwrite in place
TASK_FIELDS: Tuple[str, ...] = ("title", "description", "subtasks", "status")

# Shape of one grouped-by-category entry
CATEGORY_SUMMARY_FIELDS: Tuple[str, ...] = ("_id", "slug", "category", "categoryImage")

# Projection whitelist (field -> stored column used for fast projection)
PROJECTABLE_FIELDS: Dict[str, str] = {
    "_id": "id",
    "slug": "slug",
    "name": "name",
    "category": "category",
}
