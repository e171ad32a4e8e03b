"""
Registration, login and profile handlers
"""
import logging
from boto3.dynamodb.conditions import Attr
from fluxlora.api.events import ApiRequest, ApiResponse, Handler
from fluxlora.api.handlers.common import (
    filter_updates,
    get_owned_record,
    merge_preferences,
    public_account,
    require_identity,
)
from fluxlora.api.schemas import LoginRequest, ProfileUpdate, RegisterRequest
from fluxlora.api.validation import all_of, parse_model, require_fields, schema_validator
from fluxlora.auth.security import Identity
from fluxlora.context import AppContext
from fluxlora.database.models import new_account
from fluxlora.exceptions import AuthenticationError, ConflictError

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("displayName", "avatarUrl", "preferences")


def find_account_by_email(ctx: AppContext, email: str):
    """Accounts have no email index, so this is a filtered scan"""
    matches = ctx.store.scan_with_filter(ctx.settings.accounts_table, Attr("email").eq(email.lower()))
    return matches[0] if matches else None


def build_register_handler(ctx: AppContext) -> Handler:
    def register(request: ApiRequest) -> ApiResponse:
        payload = parse_model(RegisterRequest, request.json())
        email = str(payload.email).lower()

        if find_account_by_email(ctx, email):
            raise ConflictError("User already exists with this email")

        account = ctx.store.create(
            ctx.settings.accounts_table,
            new_account(email, ctx.passwords.hash(payload.password), payload.displayName)
        )
        logger.info(f"Registered account {account['id']}")
        token = ctx.tokens.issue(Identity(id=account["id"], email=email))
        return ctx.envelope.success({"user": public_account(account), "token": token}, 201)

    return ctx.middleware(methods=["POST"], validate_body=schema_validator(RegisterRequest))(register)


def build_login_handler(ctx: AppContext) -> Handler:
    def login(request: ApiRequest) -> ApiResponse:
        credentials = parse_model(LoginRequest, request.json())
        email = credentials.email.lower()
        password = credentials.password

        account = find_account_by_email(ctx, email)
        # one message for unknown email and wrong password
        if not account or not ctx.passwords.verify(password, account.get("passwordHash", "")):
            raise AuthenticationError("Invalid credentials")

        token = ctx.tokens.issue(Identity(id=account["id"], email=account["email"]))
        return ctx.envelope.success({"user": public_account(account), "token": token})

    return ctx.middleware(methods=["POST"], validate_body=all_of(
        require_fields("email", "password"),
        schema_validator(LoginRequest),
    ))(login)


def build_profile_handler(ctx: AppContext) -> Handler:
    table = ctx.settings.accounts_table

    def profile(request: ApiRequest) -> ApiResponse:
        identity = require_identity(request)
        account = get_owned_record(ctx.store, table, identity.id, identity.id, "User")

        if request.method == "GET":
            return ctx.envelope.success(public_account(account))

        updates = filter_updates(request.json_object(), PROFILE_FIELDS)
        validated = parse_model(ProfileUpdate, updates).model_dump(exclude_unset=True)
        if validated.get("preferences") is not None:
            validated["preferences"] = merge_preferences(account.get("preferences"), validated["preferences"])
        updated = ctx.store.update(table, identity.id, validated)
        return ctx.envelope.success(public_account(updated))

    return ctx.middleware(methods=["GET", "PUT"], require_auth=True)(profile)
