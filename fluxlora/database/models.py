"""
Record layouts for the document tables
Account, TrainingModel, TrainingImage and GeneratedImage are flat dicts keyed by `id`
"""
import copy
import random
import uuid
from typing import Optional

STATUS_PENDING = "pending"
STATUS_TRAINING = "training"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"

# pending -> training -> completed | failed, never backwards
STATUS_RANK = {
    STATUS_PENDING: 0,
    STATUS_TRAINING: 1,
    STATUS_COMPLETED: 2,
    STATUS_FAILED: 2,
}
TERMINAL_STATUSES = frozenset({STATUS_COMPLETED, STATUS_FAILED})

DEFAULT_PREFERENCES = {
    "theme": "system",
    "notifications": {
        "email": True,
        "trainingComplete": True,
        "generationReady": True,
    },
}


def new_id() -> str:
    return str(uuid.uuid4())


def can_transition(current: str, new: str) -> bool:
    """Whether a model may move from `current` to `new` status"""
    if current == new:
        return True
    if current in TERMINAL_STATUSES:
        return False
    return STATUS_RANK.get(new, -1) > STATUS_RANK.get(current, -1)


def new_account(email: str, password_hash: str, display_name: Optional[str] = None) -> dict:
    account_id = new_id()
    return {
        "id": account_id,
        "userId": account_id,
        "email": email,
        "passwordHash": password_hash,
        "displayName": display_name or email.split("@")[0],
        "preferences": copy.deepcopy(DEFAULT_PREFERENCES),
        "apiKeys": {},
    }


def default_settings(user_id: str, email: str) -> dict:
    """Settings record for an identity whose account record is missing"""
    return {
        "id": user_id,
        "userId": user_id,
        "email": email,
        "displayName": email.split("@")[0] if email else "",
        "avatarUrl": "",
        "preferences": copy.deepcopy(DEFAULT_PREFERENCES),
        "apiKeys": {},
    }


def new_training_model(user_id: str, name: str, trigger_word: str, description: Optional[str] = None,
                       training_config: Optional[dict] = None) -> dict:
    config = training_config or {}
    return {
        "id": new_id(),
        "userId": user_id,
        "name": name,
        "description": description,
        "status": STATUS_PENDING,
        "triggerWord": trigger_word,
        "imageCount": 0,
        "progress": 0,
        "trainingConfig": {
            "steps": config.get("steps", 1000),
            "learningRate": config.get("learningRate", 1e-4),
            "batchSize": config.get("batchSize", 1),
        },
    }


def new_training_image(user_id: str, model_id: str, bucket: str, key: str, url: str, filename: str,
                       original_name: Optional[str], size: int, mime_type: str,
                       width: Optional[int] = None, height: Optional[int] = None,
                       content_hash: Optional[str] = None) -> dict:
    return {
        "id": new_id(),
        "modelId": model_id,
        "userId": user_id,
        "filename": filename,
        "originalName": original_name or filename,
        "url": url,
        "bucket": bucket,
        "storageKey": key,
        "size": size,
        "mimeType": mime_type,
        "width": width,
        "height": height,
        "hash": content_hash or "",
    }


def new_generated_image(user_id: str, model_id: str, prompt: str, image_url: str,
                        negative_prompt: Optional[str] = None, generation_config: Optional[dict] = None,
                        bucket: Optional[str] = None, key: Optional[str] = None,
                        image_id: Optional[str] = None) -> dict:
    config = generation_config or {}
    seed = config.get("seed")
    return {
        "id": image_id or new_id(),
        "userId": user_id,
        "modelId": model_id,
        "prompt": prompt,
        "negativePrompt": negative_prompt,
        "imageUrl": image_url,
        "thumbnailUrl": image_url,
        "bucket": bucket,
        "storageKey": key,
        "generationConfig": {
            "steps": config.get("steps", 50),
            "guidanceScale": config.get("guidanceScale", 7.5),
            "seed": seed if seed is not None else random.randint(0, 999999),
        },
        "isFavorite": False,
    }
