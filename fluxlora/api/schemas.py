"""
Pydantic schemas for request bodies
"""
import re
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Dict, Literal, Optional
from fluxlora.api.validation import is_valid_url, sanitize_string

ModelStatus = Literal["pending", "training", "completed", "failed"]
UploadType = Literal["training", "generated", "avatar"]
SERVICE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def clean_display_name(v):
    if v is None:
        return v
    cleaned = sanitize_string(v)
    if not 2 <= len(cleaned) <= 50:
        raise ValueError("Display name must be between 2 and 50 characters")
    return cleaned


def reject_null(v):
    """Explicit null would remove a field every record must keep"""
    if v is None:
        raise ValueError("Field cannot be null")
    return v


# Auth Schemas
class RegisterRequest(BaseModel):
    """Request schema for account registration"""
    email: EmailStr
    password: str = Field(..., min_length=8, description="At least 8 characters")
    displayName: Optional[str] = None

    @field_validator("displayName")
    @classmethod
    def validate_display_name(cls, v):
        return clean_display_name(v)


class LoginRequest(BaseModel):
    email: str
    password: str


class NotificationPreferences(BaseModel):
    email: Optional[bool] = None
    trainingComplete: Optional[bool] = None
    generationReady: Optional[bool] = None


class Preferences(BaseModel):
    theme: Optional[Literal["light", "dark", "system"]] = None
    notifications: Optional[NotificationPreferences] = None


class ProfileUpdate(BaseModel):
    """Mutable profile fields"""
    displayName: Optional[str] = None
    avatarUrl: Optional[str] = None
    preferences: Optional[Preferences] = None

    @field_validator("displayName")
    @classmethod
    def validate_display_name(cls, v):
        return clean_display_name(v)

    @field_validator("displayName", "preferences", mode="before")
    @classmethod
    def not_null(cls, v):
        return reject_null(v)

    @field_validator("avatarUrl")
    @classmethod
    def validate_avatar_url(cls, v):
        if v is None or v == "":
            return v
        if not is_valid_url(v):
            raise ValueError("Invalid avatar URL format")
        return v


class SettingsUpdate(ProfileUpdate):
    """Profile fields plus third-party API keys (plaintext in, encrypted at rest)"""
    apiKeys: Optional[Dict[str, Optional[str]]] = None

    @field_validator("apiKeys")
    @classmethod
    def validate_api_keys(cls, v):
        if v is None:
            return v
        for service, key in v.items():
            if not SERVICE_NAME_PATTERN.match(service):
                raise ValueError(f"Invalid service name: {service}")
            if key is not None and len(key) > 512:
                raise ValueError(f"API key for {service} is too long")
        return v


# Training Model Schemas
class TrainingConfig(BaseModel):
    steps: int = Field(1000, ge=1, le=10000)
    learningRate: float = Field(1e-4, gt=0, le=1)
    batchSize: int = Field(1, ge=1, le=64)


class ModelCreate(BaseModel):
    """Request schema for creating a training model"""
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    triggerWord: str = Field(..., min_length=1, max_length=50)
    trainingConfig: Optional[TrainingConfig] = None

    @field_validator("name", "triggerWord")
    @classmethod
    def strip_required(cls, v):
        if not v.strip():
            raise ValueError("Value cannot be empty")
        return v.strip()


class ModelUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    status: Optional[ModelStatus] = None
    progress: Optional[float] = Field(None, ge=0, le=100)
    errorMessage: Optional[str] = Field(None, max_length=1000)
    modelUrl: Optional[str] = None
    thumbnailUrl: Optional[str] = None
    completedAt: Optional[str] = None

    @field_validator("name", "status", "progress", mode="before")
    @classmethod
    def not_null(cls, v):
        return reject_null(v)

    @field_validator("modelUrl", "thumbnailUrl")
    @classmethod
    def validate_urls(cls, v):
        if v and not is_valid_url(v):
            raise ValueError("Invalid URL format")
        return v


# Image Schemas
class TrainingImageCreate(BaseModel):
    """Metadata for an image already uploaded through a presigned URL"""
    filename: str = Field(..., min_length=1, max_length=255)
    originalName: Optional[str] = Field(None, max_length=255)
    size: int = Field(..., ge=1)
    mimeType: str
    width: Optional[int] = Field(None, ge=1)
    height: Optional[int] = Field(None, ge=1)
    hash: Optional[str] = Field(None, max_length=128, description="Content hash for deduplication")
    key: Optional[str] = Field(None, description="Object key returned by /upload/presigned")


class GenerationConfig(BaseModel):
    steps: int = Field(50, ge=1, le=150)
    guidanceScale: float = Field(7.5, ge=0, le=30)
    seed: Optional[int] = Field(None, ge=0)


class GenerateImageRequest(BaseModel):
    modelId: str = Field(..., min_length=1)
    prompt: str = Field(..., min_length=1, max_length=1000)
    negativePrompt: Optional[str] = Field(None, max_length=1000)
    generationConfig: Optional[GenerationConfig] = None
    imageUrl: Optional[str] = None

    @field_validator("prompt")
    @classmethod
    def validate_prompt(cls, v):
        if not v.strip():
            raise ValueError("Prompt cannot be empty")
        return v.strip()

    @field_validator("imageUrl")
    @classmethod
    def validate_image_url(cls, v):
        if v and not is_valid_url(v):
            raise ValueError("Invalid URL format")
        return v


class GeneratedImageUpdate(BaseModel):
    isFavorite: Optional[bool] = None
    prompt: Optional[str] = Field(None, min_length=1, max_length=1000)
    negativePrompt: Optional[str] = Field(None, max_length=1000)

    @field_validator("isFavorite", "prompt", mode="before")
    @classmethod
    def not_null(cls, v):
        return reject_null(v)


# Upload Schemas
class PresignedUrlRequest(BaseModel):
    filename: str = Field(..., min_length=1, max_length=255)
    contentType: str
    type: UploadType
    modelId: Optional[str] = None
    size: Optional[int] = Field(None, ge=1)

    @model_validator(mode="after")
    def require_model_for_training(self):
        if self.type == "training" and not self.modelId:
            raise ValueError("modelId is required for training images")
        return self
