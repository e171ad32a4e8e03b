"""
User settings handlers.
Settings live on the account record; third-party API keys are stored encrypted
and only ever returned masked.
"""
import logging
from typing import Optional
from fluxlora.api.events import ApiRequest, ApiResponse, Handler
from fluxlora.api.handlers.common import filter_updates, merge_preferences, public_account, require_identity
from fluxlora.api.schemas import SettingsUpdate
from fluxlora.api.validation import parse_model
from fluxlora.auth.security import Identity
from fluxlora.context import AppContext
from fluxlora.database.models import default_settings
from fluxlora.exceptions import MethodNotAllowedError, RecordExistsError

logger = logging.getLogger(__name__)

SETTINGS_FIELDS = ("displayName", "avatarUrl", "preferences", "apiKeys")
MASK = "********"


def key_context(user_id: str, service: str) -> str:
    return f"{user_id}:{service}"


def mask_api_key(ctx: AppContext, user_id: str, service: str, ciphertext: str) -> str:
    """Mask plus the last four characters when the key can be decrypted"""
    if not ctx.secrets.configured:
        return MASK
    try:
        plaintext = ctx.secrets.decrypt(ciphertext, key_context(user_id, service))
    except ValueError:
        return MASK
    return MASK + plaintext[-4:] if len(plaintext) > 8 else MASK


def public_settings(ctx: AppContext, record: dict) -> dict:
    data = public_account(record)
    user_id = record["id"]
    data["apiKeys"] = {
        service: mask_api_key(ctx, user_id, service, ciphertext)
        for service, ciphertext in (record.get("apiKeys") or {}).items()
    }
    return data


def load_or_create_settings(ctx: AppContext, identity: Identity) -> dict:
    table = ctx.settings.accounts_table
    record = ctx.store.get(table, identity.id)
    if record:
        return record
    try:
        record = ctx.store.create(table, default_settings(identity.id, identity.email))
        logger.info(f"Created default settings for {identity.id}")
        return record
    except RecordExistsError:
        # created by a concurrent request
        return ctx.store.get(table, identity.id)


def encrypt_api_keys(ctx: AppContext, user_id: str, current: Optional[dict], updates: dict) -> dict:
    """Merge key updates into the stored map; an empty value removes the key"""
    merged = dict(current or {})
    for service, value in updates.items():
        if not value:
            merged.pop(service, None)
            continue
        merged[service] = ctx.secrets.encrypt(value, key_context(user_id, service))
    return merged


def update_settings(ctx: AppContext, identity: Identity, payload: dict) -> ApiResponse:
    current = load_or_create_settings(ctx, identity)
    updates = filter_updates(payload, SETTINGS_FIELDS)
    changes = parse_model(SettingsUpdate, updates).model_dump(exclude_unset=True)

    if changes.get("preferences") is not None:
        changes["preferences"] = merge_preferences(current.get("preferences"), changes["preferences"])
    if "apiKeys" in changes:
        changes["apiKeys"] = encrypt_api_keys(ctx, identity.id, current.get("apiKeys"), changes["apiKeys"] or {})
        logger.info(f"Updated API keys for {identity.id}: {sorted(changes['apiKeys'])}")

    updated = ctx.store.update(ctx.settings.accounts_table, identity.id, changes)
    return ctx.envelope.success(public_settings(ctx, updated))


def build_settings_handler(ctx: AppContext) -> Handler:
    def settings(request: ApiRequest) -> ApiResponse:
        identity = require_identity(request)
        if request.method == "GET":
            return ctx.envelope.success(public_settings(ctx, load_or_create_settings(ctx, identity)))
        if request.method == "PUT":
            return update_settings(ctx, identity, request.json_object())
        raise MethodNotAllowedError(request.method)

    return ctx.middleware(require_auth=True)(settings)
