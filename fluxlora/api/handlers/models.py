"""
Training model handlers: list, create, read, update, delete with cascade
"""
import logging
from fluxlora.api.events import ApiRequest, ApiResponse, Handler
from fluxlora.api.handlers.common import (
    filter_updates,
    get_owned_record,
    newest_first,
    require_identity,
)
from fluxlora.api.schemas import ModelCreate, ModelUpdate
from fluxlora.api.validation import parse_model
from fluxlora.context import AppContext
from fluxlora.database.connection import MODEL_ID_INDEX, USER_ID_INDEX
from fluxlora.database.models import STATUS_COMPLETED, STATUS_TRAINING, can_transition, new_training_model
from fluxlora.database.records import utc_now_iso
from fluxlora.exceptions import MethodNotAllowedError, RecordNotFoundError, ValidationError

logger = logging.getLogger(__name__)

MODEL_UPDATE_FIELDS = (
    "name",
    "description",
    "status",
    "progress",
    "errorMessage",
    "modelUrl",
    "thumbnailUrl",
    "completedAt",
)


def list_models(ctx: AppContext, user_id: str) -> ApiResponse:
    models = ctx.store.query_by_index(ctx.settings.models_table, USER_ID_INDEX, "userId", user_id)
    return ctx.envelope.success(newest_first(models))


def create_model(ctx: AppContext, user_id: str, payload: dict) -> ApiResponse:
    request = parse_model(ModelCreate, payload)
    config = request.trainingConfig.model_dump() if request.trainingConfig else None
    model = ctx.store.create(
        ctx.settings.models_table,
        new_training_model(user_id, request.name, request.triggerWord, request.description, config)
    )
    logger.info(f"Created model {model['id']} for user {user_id}")
    return ctx.envelope.success(model, 201)


def update_model(ctx: AppContext, user_id: str, model_id: str, payload: dict) -> ApiResponse:
    existing = get_owned_record(ctx.store, ctx.settings.models_table, model_id, user_id, "Model")
    updates = filter_updates(payload, MODEL_UPDATE_FIELDS)
    changes = parse_model(ModelUpdate, updates).model_dump(exclude_unset=True)

    new_status = changes.get("status")
    if "status" in changes:
        current = existing.get("status")
        if not can_transition(current, new_status):
            raise ValidationError(
                "Invalid status transition",
                details={"from": current, "to": new_status}
            )
        minimum = ctx.settings.MIN_TRAINING_IMAGES
        if new_status == STATUS_TRAINING and current != STATUS_TRAINING and existing.get("imageCount", 0) < minimum:
            raise ValidationError(f"Model needs at least {minimum} training images")
        if new_status == STATUS_COMPLETED and current != STATUS_COMPLETED and not changes.get("completedAt"):
            changes["completedAt"] = utc_now_iso()

    updated = ctx.store.update(ctx.settings.models_table, model_id, changes)
    if new_status and new_status != existing.get("status"):
        logger.info(f"Model {model_id} status {existing.get('status')} -> {new_status}")
    return ctx.envelope.success(updated)


def delete_model(ctx: AppContext, user_id: str, model_id: str) -> ApiResponse:
    get_owned_record(ctx.store, ctx.settings.models_table, model_id, user_id, "Model")
    ctx.store.delete(ctx.settings.models_table, model_id)

    images = ctx.store.query_by_index(ctx.settings.training_images_table, MODEL_ID_INDEX, "modelId", model_id)
    for image in images:
        try:
            ctx.store.delete(ctx.settings.training_images_table, image["id"])
        except RecordNotFoundError:
            # removed concurrently
            continue
        if image.get("bucket") and image.get("storageKey"):
            ctx.storage.delete_file(image["bucket"], image["storageKey"])

    logger.info(f"Deleted model {model_id} and {len(images)} training images")
    return ctx.envelope.success({"message": "Model deleted successfully", "deletedImages": len(images)})


def build_models_handler(ctx: AppContext) -> Handler:
    def models(request: ApiRequest) -> ApiResponse:
        user_id = require_identity(request).id
        model_id = request.path_params.get("id")

        if request.method == "GET":
            if model_id:
                model = get_owned_record(ctx.store, ctx.settings.models_table, model_id, user_id, "Model")
                return ctx.envelope.success(model)
            return list_models(ctx, user_id)
        if request.method == "POST" and not model_id:
            return create_model(ctx, user_id, request.json_object())
        if request.method == "PUT" and model_id:
            return update_model(ctx, user_id, model_id, request.json_object())
        if request.method == "DELETE" and model_id:
            return delete_model(ctx, user_id, model_id)
        raise MethodNotAllowedError(request.method)

    return ctx.middleware(require_auth=True)(models)
