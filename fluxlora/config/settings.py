"""
Configuration settings for the FLUX LoRA backend
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_RELOAD: bool = False
    API_TITLE: str = "FLUX LoRA Backend"
    API_VERSION: str = "1.0.0"

    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_REGION: str = "us-east-1"
    DYNAMODB_ENDPOINT_URL: Optional[str] = None
    S3_ENDPOINT_URL: Optional[str] = None
    RESOURCE_PREFIX: str = "flux-lora-backend-dev"
    CREATE_TABLES: bool = False

    JWT_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    TOKEN_EXPIRE_DAYS: int = 7
    BCRYPT_ROUNDS: int = 12
    # base64-encoded 32 byte key for API key encryption
    SECRETS_ENCRYPTION_KEY: Optional[str] = None

    CORS_ORIGIN: str = "*"
    CORS_METHODS: List[str] = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    CORS_ALLOWED_HEADERS: List[str] = ["Content-Type", "Authorization"]

    MAX_FILE_SIZE: int = 10 * 1024 * 1024
    ALLOWED_IMAGE_TYPES: List[str] = ["image/jpeg", "image/jpg", "image/png", "image/webp"]
    MIN_TRAINING_IMAGES: int = 2
    MAX_TRAINING_IMAGES: int = 50
    PRESIGNED_URL_EXPIRY: int = 300
    DEFAULT_PAGE_LIMIT: int = 20
    MAX_PAGE_LIMIT: int = 100

    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    @property
    def accounts_table(self) -> str:
        return f"{self.RESOURCE_PREFIX}-user-settings"

    @property
    def models_table(self) -> str:
        return f"{self.RESOURCE_PREFIX}-training-models"

    @property
    def training_images_table(self) -> str:
        return f"{self.RESOURCE_PREFIX}-training-images"

    @property
    def generated_images_table(self) -> str:
        return f"{self.RESOURCE_PREFIX}-generated-images"

    @property
    def training_images_bucket(self) -> str:
        return f"{self.RESOURCE_PREFIX}-training-images"

    @property
    def generated_images_bucket(self) -> str:
        return f"{self.RESOURCE_PREFIX}-generated-images"

    def validate_required(self):
        """Fail fast on settings the service cannot run without"""
        required_vars = ["JWT_SECRET"]
        missing = [var for var in required_vars if not getattr(self, var, None)]
        if missing:
            raise ValueError(f"Missing required config: {', '.join(missing)}")


settings = Settings()
