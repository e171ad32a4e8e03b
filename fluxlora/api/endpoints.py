"""
FastAPI adapter for the handler pipeline.
Every route accepts every method so that preflights and 405s are answered by
the pipeline itself, with the same envelope and CORS headers as everything else.
"""
from fastapi import APIRouter, Request
from fastapi.responses import Response
from fastapi.concurrency import run_in_threadpool
import logging
from fluxlora.api.events import ApiRequest, ApiResponse, Handler
from fluxlora.api.handlers import (
    build_generated_images_handler,
    build_health_handler,
    build_login_handler,
    build_models_handler,
    build_profile_handler,
    build_register_handler,
    build_settings_handler,
    build_training_images_handler,
    build_upload_handler,
)
from fluxlora.context import AppContext
logger = logging.getLogger(__name__)

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


async def to_api_request(request: Request) -> ApiRequest:
    body = await request.body()
    return ApiRequest(
        method=request.method.upper(),
        path=request.url.path,
        headers=dict(request.headers),
        path_params=dict(request.path_params),
        query_params=dict(request.query_params),
        body=body.decode("utf-8", errors="replace") if body else None,
    )


def to_response(response: ApiResponse) -> Response:
    return Response(content=response.body, status_code=response.status_code, headers=response.headers)


def endpoint(handler: Handler):
    """Wrap a synchronous pipeline handler as a FastAPI endpoint"""
    async def call(request: Request) -> Response:
        api_request = await to_api_request(request)
        api_response = await run_in_threadpool(handler, api_request)
        return to_response(api_response)
    return call


def build_routes(ctx: AppContext) -> list:
    """(path, name, handler) for every resource"""
    models = build_models_handler(ctx)
    training_images = build_training_images_handler(ctx)
    generated_images = build_generated_images_handler(ctx)
    return [
        ("/health", "health", build_health_handler(ctx)),
        ("/auth/register", "register", build_register_handler(ctx)),
        ("/auth/login", "login", build_login_handler(ctx)),
        ("/auth/profile", "profile", build_profile_handler(ctx)),
        ("/models", "models", models),
        ("/models/{id}", "model", models),
        ("/models/{modelId}/images", "training_images", training_images),
        ("/images/{id}", "training_image", training_images),
        ("/generated-images", "generated_images", generated_images),
        ("/generated-images/{id}", "generated_image", generated_images),
        ("/settings", "settings", build_settings_handler(ctx)),
        ("/upload/presigned", "presigned_upload", build_upload_handler(ctx)),
    ]


def build_router(ctx: AppContext) -> APIRouter:
    router = APIRouter()
    for path, name, handler in build_routes(ctx):
        router.add_api_route(path, endpoint(handler), methods=ALL_METHODS, name=name, include_in_schema=False)
    logger.info(f"Registered {len(router.routes)} routes")
    return router
