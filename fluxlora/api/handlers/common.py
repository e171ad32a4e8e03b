"""
Helpers shared by every resource handler: identity, ownership, whitelists, paging
"""
from typing import Iterable, List, Optional, Tuple
from fluxlora.api.events import ApiRequest
from fluxlora.auth.security import Identity
from fluxlora.database.records import RecordStore
from fluxlora.exceptions import AuthenticationError, NotFoundError, ValidationError


def require_identity(request: ApiRequest) -> Identity:
    if request.identity is None:
        raise AuthenticationError("Authentication required")
    return request.identity


def get_owned_record(store: RecordStore, table: str, record_id: str, user_id: str, label: str) -> dict:
    """
    Fetch a record the caller owns.
    Absent and foreign records both raise the same 404 so ids cannot be probed.
    """
    record = store.get(table, record_id) if record_id else None
    if not record or record.get("userId") != user_id:
        raise NotFoundError(f"{label} not found")
    return record


def filter_updates(payload: dict, allowed: Iterable[str]) -> dict:
    """Keep only whitelisted fields; reject an update with nothing left"""
    allowed = set(allowed)
    filtered = {key: value for key, value in payload.items() if key in allowed}
    if not filtered:
        raise ValidationError("No valid fields to update")
    return filtered


def newest_first(items: List[dict]) -> List[dict]:
    return sorted(items, key=lambda item: item.get("createdAt") or "", reverse=True)


def parse_pagination(request: ApiRequest, default_limit: int, max_limit: int) -> Optional[Tuple[int, int]]:
    """(page, limit) when the caller asked for paging, otherwise None"""
    page_raw = request.query_params.get("page")
    limit_raw = request.query_params.get("limit")
    if page_raw is None and limit_raw is None:
        return None

    page = 1
    if page_raw is not None:
        try:
            page = int(page_raw)
        except ValueError:
            page = 0
        if page < 1:
            raise ValidationError("Page must be a positive integer")

    limit = default_limit
    if limit_raw is not None:
        try:
            limit = int(limit_raw)
        except ValueError:
            limit = 0
        if limit < 1:
            raise ValidationError("Limit must be a positive integer")
        if limit > max_limit:
            raise ValidationError(f"Limit cannot exceed {max_limit}")
    return page, limit


def public_account(record: dict) -> dict:
    """Account fields safe to return to the owner"""
    return {
        "id": record.get("id"),
        "email": record.get("email"),
        "displayName": record.get("displayName"),
        "avatarUrl": record.get("avatarUrl"),
        "preferences": record.get("preferences") or {},
        "createdAt": record.get("createdAt"),
        "updatedAt": record.get("updatedAt"),
    }


def merge_preferences(current: Optional[dict], update: dict) -> dict:
    """Partial preference updates leave unspecified settings untouched"""
    merged = dict(current or {})
    for key, value in update.items():
        if value is None:
            continue
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_preferences(merged[key], value)
        else:
            merged[key] = value
    return merged
