"""
Presigned direct-upload URLs
"""
import logging
import os
import uuid
from fluxlora.api.events import ApiRequest, ApiResponse, Handler
from fluxlora.api.handlers.common import get_owned_record, require_identity
from fluxlora.api.handlers.training_images import training_image_prefix
from fluxlora.api.schemas import PresignedUrlRequest
from fluxlora.api.validation import parse_model, schema_validator
from fluxlora.context import AppContext
from fluxlora.exceptions import ValidationError

logger = logging.getLogger(__name__)


def upload_target(ctx: AppContext, user_id: str, request: PresignedUrlRequest):
    """(bucket, key prefix) for an upload type"""
    if request.type == "training":
        get_owned_record(ctx.store, ctx.settings.models_table, request.modelId, user_id, "Model")
        return ctx.settings.training_images_bucket, training_image_prefix(user_id, request.modelId)
    if request.type == "generated":
        return ctx.settings.generated_images_bucket, f"{user_id}/generated/"
    # avatars share the training bucket
    return ctx.settings.training_images_bucket, f"{user_id}/avatars/"


def unique_filename(filename: str) -> str:
    extension = os.path.splitext(filename)[1].lower()
    return f"{uuid.uuid4()}{extension}"


def build_upload_handler(ctx: AppContext) -> Handler:
    def upload(request: ApiRequest) -> ApiResponse:
        user_id = require_identity(request).id
        upload_request = parse_model(PresignedUrlRequest, request.json())

        content_type = upload_request.contentType.lower()
        if content_type not in ctx.settings.ALLOWED_IMAGE_TYPES:
            raise ValidationError(
                "Invalid file type",
                details={"allowedTypes": ctx.settings.ALLOWED_IMAGE_TYPES}
            )
        if upload_request.size is not None and upload_request.size > ctx.settings.MAX_FILE_SIZE:
            raise ValidationError(
                "File too large",
                details={"maxSize": ctx.settings.MAX_FILE_SIZE}
            )

        bucket, prefix = upload_target(ctx, user_id, upload_request)
        key = prefix + unique_filename(upload_request.filename)
        expires_in = ctx.settings.PRESIGNED_URL_EXPIRY
        upload_url = ctx.storage.generate_presigned_upload(bucket, key, content_type, expires_in)
        logger.info(f"Issued {upload_request.type} upload URL for {bucket}/{key}")

        return ctx.envelope.success({
            "uploadUrl": upload_url,
            "fileUrl": ctx.storage.public_url(bucket, key),
            "key": key,
            "expiresIn": expires_in,
        })

    return ctx.middleware(
        methods=["POST"],
        require_auth=True,
        validate_body=schema_validator(PresignedUrlRequest)
    )(upload)
