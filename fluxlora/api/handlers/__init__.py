from .auth import build_login_handler, build_profile_handler, build_register_handler
from .generated_images import build_generated_images_handler
from .health import build_health_handler
from .models import build_models_handler
from .settings import build_settings_handler
from .training_images import build_training_images_handler
from .upload import build_upload_handler

__all__ = [
    "build_register_handler",
    "build_login_handler",
    "build_profile_handler",
    "build_models_handler",
    "build_training_images_handler",
    "build_generated_images_handler",
    "build_settings_handler",
    "build_upload_handler",
    "build_health_handler"
]
