"""Data models and schema validation for catalog products.

Products are stored as JSON documents. The dataclasses below describe the
document shape and are the single place where incoming payloads are checked
and cast before they reach the store:

- required fields must be present (``name``, ``category``, ``price``)
- strings are trimmed, numbers and booleans are cast
- unknown top-level fields are dropped
- ``category`` is lower-cased so lookups by category are case-insensitive
"""

import math
import secrets
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from catalog.config import IMAGE_VARIANTS, REQUIRED_FIELDS, TASK_FIELDS

__all__ = [
    "ValidationError",
    "ImageSet",
    "IncludedItem",
    "RelatedProduct",
    "Task",
    "Product",
    "new_object_id",
    "normalize_category",
    "validate_update",
    "validate_task_update",
]


class ValidationError(ValueError):
    """Raised when a payload does not satisfy the product schema.

    Attributes:
        fields: Paths of the offending fields, e.g. ``["name", "includes.0.quantity"]``.
    """

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.fields = fields or []


def new_object_id() -> str:
    """Generate a 24-character hex document id."""
    return secrets.token_hex(12)


def normalize_category(category: str) -> str:
    return category.strip().lower()


# ---------- FIELD CASTING ----------


def _cast_string(value: Any, path: str) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise ValidationError(f"Cast to String failed for `{path}`", [path])
    return str(value).strip()


def _cast_number(value: Any, path: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"Cast to Number failed for `{path}`", [path])
    if isinstance(value, int):
        return value
    number = None
    if isinstance(value, float):
        number = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            pass
    # NaN and infinities cannot be served as JSON
    if number is None or not math.isfinite(number):
        raise ValidationError(f"Cast to Number failed for `{path}`", [path])
    return number


def _cast_bool(value: Any, path: str) -> Optional[bool]:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    if value in (0, 1):
        return bool(value)
    raise ValidationError(f"Cast to Boolean failed for `{path}`", [path])


def _cast_list(value: Any, path: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(f"Cast to Array failed for `{path}`", [path])
    return value


def _cast_mapping(value: Any, path: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise ValidationError(f"Cast to Object failed for `{path}`", [path])
    return value


# ---------- NESTED SHAPES ----------


@dataclass
class ImageSet:
    """Image renditions for different screen sizes."""

    mobile: Optional[str] = None
    tablet: Optional[str] = None
    desktop: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any, path: str = "image") -> "ImageSet":
        data = _cast_mapping(data, path)
        return cls(**{
            variant: _cast_string(data.get(variant), f"{path}.{variant}")
            for variant in IMAGE_VARIANTS
        })

    def to_dict(self) -> Dict[str, str]:
        return {
            variant: getattr(self, variant)
            for variant in IMAGE_VARIANTS
            if getattr(self, variant) is not None
        }


@dataclass
class IncludedItem:
    """One line of a product's box contents."""

    quantity: Optional[float] = None
    item: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any, path: str) -> "IncludedItem":
        data = _cast_mapping(data, path)
        return cls(
            quantity=_cast_number(data.get("quantity"), f"{path}.quantity"),
            item=_cast_string(data.get("item"), f"{path}.item"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in (("quantity", self.quantity), ("item", self.item)) if v is not None}


@dataclass
class RelatedProduct:
    """Denormalized summary of another product (no referential integrity)."""

    slug: Optional[str] = None
    name: Optional[str] = None
    image: Optional[ImageSet] = None

    @classmethod
    def from_dict(cls, data: Any, path: str) -> "RelatedProduct":
        data = _cast_mapping(data, path)
        image = data.get("image")
        return cls(
            slug=_cast_string(data.get("slug"), f"{path}.slug"),
            name=_cast_string(data.get("name"), f"{path}.name"),
            image=ImageSet.from_dict(image, f"{path}.image") if image is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        if self.slug is not None:
            result["slug"] = self.slug
        if self.name is not None:
            result["name"] = self.name
        if self.image is not None:
            result["image"] = self.image.to_dict()
        return result


@dataclass
class Task:
    """A task embedded in a product's ``tasks`` array."""

    title: str
    description: Optional[str] = None
    subtasks: List[Any] = field(default_factory=list)
    status: Optional[str] = None
    id: str = field(default_factory=new_object_id)

    @classmethod
    def from_dict(cls, data: Any, path: str = "task") -> "Task":
        data = _cast_mapping(data, path)
        title = _cast_string(data.get("title"), f"{path}.title")
        if not title:
            raise ValidationError(f"Task validation failed: `{path}.title` is required", [f"{path}.title"])
        task = cls(
            title=title,
            description=_cast_string(data.get("description"), f"{path}.description"),
            subtasks=_cast_list(data.get("subtasks"), f"{path}.subtasks"),
            status=_cast_string(data.get("status"), f"{path}.status"),
        )
        if data.get("_id"):
            task.id = str(data["_id"])
        return task

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"_id": self.id, "title": self.title}
        if self.description is not None:
            result["description"] = self.description
        result["subtasks"] = self.subtasks
        if self.status is not None:
            result["status"] = self.status
        return result


# ---------- PRODUCT ----------


@dataclass
class Product:
    """Represents a catalog product document.

    Required fields are enforced by ``from_dict``; everything else may be
    absent. ``id`` is assigned by the store on insert.
    """

    # Required fields
    name: str
    category: str
    price: float

    # Descriptive fields
    slug: Optional[str] = None
    description: Optional[str] = None
    features: Optional[str] = None
    is_new: Optional[bool] = None

    image: Optional[ImageSet] = None
    category_image: Optional[ImageSet] = None

    includes: List[IncludedItem] = field(default_factory=list)
    gallery: List[ImageSet] = field(default_factory=list)
    others: List[RelatedProduct] = field(default_factory=list)
    tasks: List[Task] = field(default_factory=list)
    phase_list: Optional[List[Any]] = None

    # Identity of the creator when the request was authenticated
    owner: Optional[str] = None

    # Database ID (set on insert)
    id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], owner: Optional[str] = None) -> "Product":
        """Validate and cast an incoming payload.

        Raises:
            ValidationError: if required fields are missing or a value cannot be cast.
        """
        data = _cast_mapping(data, "product")

        name = _cast_string(data.get("name"), "name")
        category = _cast_string(data.get("category"), "category")
        price = _cast_number(data.get("price"), "price")

        present = {"name": name, "category": category, "price": price}
        missing = [f for f in REQUIRED_FIELDS if present[f] is None or present[f] == ""]
        if missing:
            raise ValidationError(
                "Product validation failed: "
                + "; ".join(f"`{f}` is required" for f in missing),
                missing,
            )

        image = data.get("image")
        category_image = data.get("categoryImage")
        phase_list = data.get("phaseList")

        return cls(
            name=name,
            category=normalize_category(category),
            price=price,
            slug=_cast_string(data.get("slug"), "slug"),
            description=_cast_string(data.get("description"), "description"),
            features=_cast_string(data.get("features"), "features"),
            is_new=_cast_bool(data.get("isNew"), "isNew"),
            image=ImageSet.from_dict(image, "image") if image is not None else None,
            category_image=(
                ImageSet.from_dict(category_image, "categoryImage")
                if category_image is not None else None
            ),
            includes=[
                IncludedItem.from_dict(v, f"includes.{i}")
                for i, v in enumerate(_cast_list(data.get("includes"), "includes"))
            ],
            gallery=[
                ImageSet.from_dict(v, f"gallery.{i}")
                for i, v in enumerate(_cast_list(data.get("gallery"), "gallery"))
            ],
            others=[
                RelatedProduct.from_dict(v, f"others.{i}")
                for i, v in enumerate(_cast_list(data.get("others"), "others"))
            ],
            tasks=[
                Task.from_dict(v, f"tasks.{i}")
                for i, v in enumerate(_cast_list(data.get("tasks"), "tasks"))
            ],
            phase_list=_cast_list(phase_list, "phaseList") if phase_list is not None else None,
            owner=owner,
        )

    def to_document(self) -> Dict[str, Any]:
        """Serialize to the stored (and served) JSON document."""
        doc: Dict[str, Any] = {}
        if self.id is not None:
            doc["_id"] = self.id
        for key, value in (
            ("slug", self.slug),
            ("name", self.name),
            ("category", self.category),
            ("price", self.price),
            ("description", self.description),
            ("features", self.features),
            ("isNew", self.is_new),
        ):
            if value is not None:
                doc[key] = value
        if self.image is not None:
            doc["image"] = self.image.to_dict()
        if self.category_image is not None:
            doc["categoryImage"] = self.category_image.to_dict()
        doc["includes"] = [i.to_dict() for i in self.includes]
        doc["gallery"] = [g.to_dict() for g in self.gallery]
        doc["others"] = [o.to_dict() for o in self.others]
        doc["tasks"] = [t.to_dict() for t in self.tasks]
        if self.phase_list is not None:
            doc["phaseList"] = self.phase_list
        if self.owner is not None:
            doc["owner"] = self.owner
        return doc


def validate_update(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Keep and cast the updatable fields present in ``fields``.

    Absent or null values are treated as "not supplied" and left untouched.
    """
    fields = _cast_mapping(fields, "update")
    update: Dict[str, Any] = {}

    if fields.get("name") is not None:
        name = _cast_string(fields["name"], "name")
        if not name:
            raise ValidationError("Product validation failed: `name` is required", ["name"])
        update["name"] = name
    if fields.get("phaseList") is not None:
        update["phaseList"] = _cast_list(fields["phaseList"], "phaseList")
    if fields.get("tasks") is not None:
        update["tasks"] = [
            Task.from_dict(v, f"tasks.{i}").to_dict()
            for i, v in enumerate(_cast_list(fields["tasks"], "tasks"))
        ]
    return update


def validate_task_update(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """Keep and cast the task fields present in ``fields``."""
    fields = _cast_mapping(fields, "task")
    update: Dict[str, Any] = {}
    for key in TASK_FIELDS:
        if fields.get(key) is None:
            continue
        if key == "subtasks":
            update[key] = _cast_list(fields[key], key)
        else:
            update[key] = _cast_string(fields[key], key)
    if "title" in update and not update["title"]:
        raise ValidationError("Task validation failed: `title` is required", ["title"])
    return update
