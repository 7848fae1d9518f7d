"""Bearer-token gate for routes.

``protect`` wraps a view so the request is rejected before the view runs
unless it carries a known ``Authorization: Bearer <token>`` header. The
resolved caller is passed to the view as an explicit ``identity`` keyword
argument. When no tokens are configured, auth is disabled and ``identity``
is None.
"""

import functools
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from flask import Response, current_app, jsonify, request

__all__ = ["Identity", "protect", "resolve_identity"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """The authenticated caller."""

    id: str


def _unauthorized(message: str) -> Tuple[Response, int]:
    response = jsonify({"success": False, "data": message})
    response.headers["WWW-Authenticate"] = 'Bearer realm="catalog"'
    return response, 401


def resolve_identity(header: str, tokens: Dict[str, str]) -> Optional[Identity]:
    """Map an Authorization header to an Identity, or None if not recognised."""
    if not header.startswith("Bearer "):
        return None
    token = header.split(" ", 1)[1].strip()
    user_id = tokens.get(token)
    return Identity(id=user_id) if user_id else None


def protect(view: Callable) -> Callable:
    """Require a valid bearer token before calling ``view``."""

    @functools.wraps(view)
    def wrapper(*args, **kwargs):
        tokens: Dict[str, str] = current_app.config.get("API_TOKENS", {})
        if not tokens:
            return view(*args, identity=None, **kwargs)  # auth disabled

        header = request.headers.get("Authorization", "")
        if not header.startswith("Bearer "):
            return _unauthorized("Not authorized, no token")

        identity = resolve_identity(header, tokens)
        if identity is None:
            logger.warning(f"Rejected bearer token on {request.method} {request.path}")
            return _unauthorized("Not authorized, token failed")

        return view(*args, identity=identity, **kwargs)

    return wrapper
