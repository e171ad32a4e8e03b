"""
Training image metadata handlers.
Bytes go straight to S3 through a presigned URL; these endpoints only record
what was uploaded and keep the parent model's imageCount in step.
"""
import logging
from fluxlora.api.events import ApiRequest, ApiResponse, Handler
from fluxlora.api.handlers.common import get_owned_record, newest_first, require_identity
from fluxlora.api.schemas import TrainingImageCreate
from fluxlora.api.validation import parse_model
from fluxlora.context import AppContext
from fluxlora.database.connection import MODEL_ID_INDEX
from fluxlora.database.models import new_training_image
from fluxlora.exceptions import ConflictError, MethodNotAllowedError, RecordNotFoundError, ValidationError

logger = logging.getLogger(__name__)


def training_image_prefix(user_id: str, model_id: str) -> str:
    return f"{user_id}/models/{model_id}/images/"


def list_training_images(ctx: AppContext, user_id: str, model_id: str) -> ApiResponse:
    get_owned_record(ctx.store, ctx.settings.models_table, model_id, user_id, "Model")
    images = ctx.store.query_by_index(ctx.settings.training_images_table, MODEL_ID_INDEX, "modelId", model_id)
    return ctx.envelope.success(newest_first(images))


def add_training_image(ctx: AppContext, user_id: str, model_id: str, payload: dict) -> ApiResponse:
    settings = ctx.settings
    model = get_owned_record(ctx.store, settings.models_table, model_id, user_id, "Model")
    image = parse_model(TrainingImageCreate, payload)

    if image.mimeType.lower() not in settings.ALLOWED_IMAGE_TYPES:
        raise ValidationError(
            "Invalid file type",
            details={"allowedTypes": settings.ALLOWED_IMAGE_TYPES}
        )
    if image.size > settings.MAX_FILE_SIZE:
        raise ValidationError(
            "File too large",
            details={"maxSize": settings.MAX_FILE_SIZE}
        )
    if model.get("imageCount", 0) >= settings.MAX_TRAINING_IMAGES:
        raise ValidationError(f"A model can have at most {settings.MAX_TRAINING_IMAGES} training images")

    prefix = training_image_prefix(user_id, model_id)
    key = image.key or prefix + image.filename
    if not key.startswith(prefix) or ".." in key:
        raise ValidationError("Invalid storage key")

    existing = ctx.store.query_by_index(settings.training_images_table, MODEL_ID_INDEX, "modelId", model_id)
    if image.hash and any(item.get("hash") == image.hash for item in existing):
        raise ConflictError("Duplicate image for this model")

    bucket = settings.training_images_bucket
    record = ctx.store.create(
        settings.training_images_table,
        new_training_image(
            user_id, model_id, bucket, key, ctx.storage.public_url(bucket, key),
            image.filename, image.originalName, image.size, image.mimeType.lower(),
            image.width, image.height, image.hash
        )
    )
    ctx.store.increment(settings.models_table, model_id, "imageCount", 1)
    logger.info(f"Added training image {record['id']} to model {model_id}")
    return ctx.envelope.success(record, 201)


def delete_training_image(ctx: AppContext, user_id: str, image_id: str) -> ApiResponse:
    settings = ctx.settings
    image = get_owned_record(ctx.store, settings.training_images_table, image_id, user_id, "Image")
    ctx.store.delete(settings.training_images_table, image_id)

    try:
        ctx.store.increment(settings.models_table, image["modelId"], "imageCount", -1)
    except RecordNotFoundError:
        logger.warning(f"Parent model {image['modelId']} of image {image_id} no longer exists")

    if image.get("bucket") and image.get("storageKey"):
        ctx.storage.delete_file(image["bucket"], image["storageKey"])
    return ctx.envelope.success({"message": "Training image deleted successfully"})


def build_training_images_handler(ctx: AppContext) -> Handler:
    """Serves /models/{modelId}/images (GET, POST) and /images/{id} (DELETE)"""
    def training_images(request: ApiRequest) -> ApiResponse:
        user_id = require_identity(request).id
        model_id = request.path_params.get("modelId")
        image_id = request.path_params.get("id")

        if model_id and request.method == "GET":
            return list_training_images(ctx, user_id, model_id)
        if model_id and request.method == "POST":
            return add_training_image(ctx, user_id, model_id, request.json_object())
        if image_id and request.method == "DELETE":
            return delete_training_image(ctx, user_id, image_id)
        raise MethodNotAllowedError(request.method)

    return ctx.middleware(require_auth=True)(training_images)
