"""
Serverless entry points for API Gateway proxy events.
Each function has the `(event, context)` signature the runtime expects and
shares one AppContext per process.
"""
from functools import lru_cache
import logging
from fluxlora.api.events import ApiRequest, Handler
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
from fluxlora.config import configure_logging, settings as app_settings
from fluxlora.context import AppContext, build_context
logger = logging.getLogger(__name__)

BUILDERS = {
    "health": build_health_handler,
    "register": build_register_handler,
    "login": build_login_handler,
    "profile": build_profile_handler,
    "models": build_models_handler,
    "training_images": build_training_images_handler,
    "generated_images": build_generated_images_handler,
    "settings": build_settings_handler,
    "upload": build_upload_handler,
}


@lru_cache(maxsize=None)
def get_context() -> AppContext:
    configure_logging(app_settings)
    app_settings.validate_required()
    logger.info("Initialising handler context")
    return build_context(app_settings)


@lru_cache(maxsize=None)
def get_handler(name: str) -> Handler:
    return BUILDERS[name](get_context())


def invoke(name: str, event: dict) -> dict:
    request = ApiRequest.from_lambda_event(event)
    return get_handler(name)(request).to_lambda_result()


def health(event, context):
    return invoke("health", event)


def register(event, context):
    return invoke("register", event)


def login(event, context):
    return invoke("login", event)


def profile(event, context):
    return invoke("profile", event)


def models(event, context):
    return invoke("models", event)


def training_images(event, context):
    return invoke("training_images", event)


def generated_images(event, context):
    return invoke("generated_images", event)


def settings(event, context):
    return invoke("settings", event)


def upload(event, context):
    return invoke("upload", event)
