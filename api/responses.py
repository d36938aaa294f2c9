"""
Success envelope and query-string helpers shared by the blueprints.

    {"status": "success", "message": "...", "data": {...}}
"""
from __future__ import annotations

import math
from typing import Tuple

from flask import abort, jsonify, request

MAX_LIMIT = 100


def success_response(message: str = "Success", data=None, status: int = 200):
    return jsonify({"status": "success", "message": message, "data": data if data is not None else {}}), status


def parse_pagination(default_limit: int = 10) -> Tuple[int, int]:
    try:
        page = int(request.args.get("page", "1"))
        limit = int(request.args.get("limit", str(default_limit)))
        page = max(page, 1)
        limit = max(1, min(limit, MAX_LIMIT))
        return page, limit
    except ValueError:
        abort(400, description="page and limit must be integers")


def pagination_meta(total: int, page: int, limit: int) -> dict:
    pages = math.ceil(total / limit) if limit else 0
    return {
        "total": total,
        "pages": pages,
        "current_page": page,
        "has_next": page < pages,
        "has_prev": page > 1,
    }


def client_ip() -> str:
    """Peer address; proxy headers only count through ProxyFix (TRUSTED_PROXY_HOPS)."""
    return request.remote_addr or ""
