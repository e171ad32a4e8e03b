"""
Generated image handlers: gallery listing, generation records, favourites
"""
import logging
from fluxlora.api.events import ApiRequest, ApiResponse, Handler
from fluxlora.api.handlers.common import (
    filter_updates,
    get_owned_record,
    newest_first,
    parse_pagination,
    require_identity,
)
from fluxlora.api.schemas import GeneratedImageUpdate, GenerateImageRequest
from fluxlora.api.validation import parse_model
from fluxlora.context import AppContext
from fluxlora.database.connection import USER_ID_INDEX
from fluxlora.database.models import STATUS_COMPLETED, new_generated_image, new_id
from fluxlora.exceptions import MethodNotAllowedError, ValidationError

logger = logging.getLogger(__name__)

GENERATED_IMAGE_UPDATE_FIELDS = ("isFavorite", "prompt", "negativePrompt")


def list_generated_images(ctx: AppContext, request: ApiRequest, user_id: str) -> ApiResponse:
    favorites_only = (request.query_params.get("favorite") or "").lower() == "true"
    paging = parse_pagination(request, ctx.settings.DEFAULT_PAGE_LIMIT, ctx.settings.MAX_PAGE_LIMIT)

    if paging:
        page, limit = paging
        result = ctx.store.list_paged(
            ctx.settings.generated_images_table,
            page=page,
            limit=limit,
            filters={"userId": user_id, "isFavorite": True if favorites_only else None}
        )
        return ctx.envelope.success(result.items, meta={"pagination": result.pagination})

    images = ctx.store.query_by_index(ctx.settings.generated_images_table, USER_ID_INDEX, "userId", user_id)
    if favorites_only:
        images = [image for image in images if image.get("isFavorite")]
    return ctx.envelope.success(newest_first(images))


def create_generated_image(ctx: AppContext, user_id: str, payload: dict) -> ApiResponse:
    request = parse_model(GenerateImageRequest, payload)
    model = get_owned_record(ctx.store, ctx.settings.models_table, request.modelId, user_id, "Model")
    if model.get("status") != STATUS_COMPLETED:
        raise ValidationError("Model is not ready for generation")

    image_id = new_id()
    bucket = key = None
    image_url = request.imageUrl
    if not image_url:
        bucket = ctx.settings.generated_images_bucket
        key = f"{user_id}/generated/{image_id}.jpg"
        image_url = ctx.storage.public_url(bucket, key)

    config = request.generationConfig.model_dump() if request.generationConfig else None
    image = ctx.store.create(
        ctx.settings.generated_images_table,
        new_generated_image(
            user_id, request.modelId, request.prompt, image_url,
            negative_prompt=request.negativePrompt,
            generation_config=config,
            bucket=bucket,
            key=key,
            image_id=image_id
        )
    )
    logger.info(f"Recorded generated image {image_id} from model {request.modelId}")
    return ctx.envelope.success(image, 201)


def update_generated_image(ctx: AppContext, user_id: str, image_id: str, payload: dict) -> ApiResponse:
    get_owned_record(ctx.store, ctx.settings.generated_images_table, image_id, user_id, "Image")
    updates = filter_updates(payload, GENERATED_IMAGE_UPDATE_FIELDS)
    changes = parse_model(GeneratedImageUpdate, updates).model_dump(exclude_unset=True)
    updated = ctx.store.update(ctx.settings.generated_images_table, image_id, changes)
    return ctx.envelope.success(updated)


def delete_generated_image(ctx: AppContext, user_id: str, image_id: str) -> ApiResponse:
    image = get_owned_record(ctx.store, ctx.settings.generated_images_table, image_id, user_id, "Image")
    ctx.store.delete(ctx.settings.generated_images_table, image_id)
    if image.get("bucket") and image.get("storageKey"):
        ctx.storage.delete_file(image["bucket"], image["storageKey"])
    logger.info(f"Deleted generated image {image_id}")
    return ctx.envelope.success({"message": "Generated image deleted successfully"})


def build_generated_images_handler(ctx: AppContext) -> Handler:
    def generated_images(request: ApiRequest) -> ApiResponse:
        user_id = require_identity(request).id
        image_id = request.path_params.get("id")

        if request.method == "GET":
            if image_id:
                image = get_owned_record(ctx.store, ctx.settings.generated_images_table, image_id, user_id, "Image")
                return ctx.envelope.success(image)
            return list_generated_images(ctx, request, user_id)
        if request.method == "POST" and not image_id:
            return create_generated_image(ctx, user_id, request.json_object())
        if request.method == "PUT" and image_id:
            return update_generated_image(ctx, user_id, image_id, request.json_object())
        if request.method == "DELETE" and image_id:
            return delete_generated_image(ctx, user_id, image_id)
        raise MethodNotAllowedError(request.method)

    return ctx.middleware(require_auth=True)(generated_images)
