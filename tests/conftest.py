"""
Shared fixtures: AWS is mocked in-process with moto, the app runs under TestClient
"""
import os

os.environ.setdefault("AWS_ACCESS_KEY_ID", "testing")
os.environ.setdefault("AWS_SECRET_ACCESS_KEY", "testing")
os.environ.setdefault("AWS_DEFAULT_REGION", "us-east-1")

import boto3
import pytest
from fastapi.testclient import TestClient
from moto import mock_aws
from fluxlora.auth import generate_key
from fluxlora.config.settings import Settings
from fluxlora.context import build_context
from fluxlora.database import create_resource, create_tables

PASSWORD = "password123"


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        AWS_ACCESS_KEY_ID="testing",
        AWS_SECRET_ACCESS_KEY="testing",
        AWS_REGION="us-east-1",
        DYNAMODB_ENDPOINT_URL=None,
        S3_ENDPOINT_URL=None,
        RESOURCE_PREFIX="fluxlora-test",
        JWT_SECRET="test-secret",
        SECRETS_ENCRYPTION_KEY=generate_key(),
        BCRYPT_ROUNDS=4,
    )


@pytest.fixture
def aws():
    with mock_aws():
        yield


@pytest.fixture
def ctx(aws, test_settings):
    resource = create_resource(test_settings)
    create_tables(resource, test_settings)
    s3 = boto3.client("s3", region_name=test_settings.AWS_REGION)
    s3.create_bucket(Bucket=test_settings.training_images_bucket)
    s3.create_bucket(Bucket=test_settings.generated_images_bucket)
    return build_context(test_settings, resource)


@pytest.fixture
def client(ctx):
    from fluxlora.main import create_app
    return TestClient(create_app(ctx))


def register(client, email, password=PASSWORD, display_name=None):
    payload = {"email": email, "password": password}
    if display_name:
        payload["displayName"] = display_name
    return client.post("/auth/register", json=payload)


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice(client):
    data = register(client, "alice@example.com").json()["data"]
    return {"user": data["user"], "headers": bearer(data["token"])}


@pytest.fixture
def bob(client):
    data = register(client, "bob@example.com").json()["data"]
    return {"user": data["user"], "headers": bearer(data["token"])}


def create_model(client, headers, name="Test", trigger_word="trg1", **extra):
    payload = {"name": name, "triggerWord": trigger_word}
    payload.update(extra)
    response = client.post("/models", json=payload, headers=headers)
    assert response.status_code == 201
    return response.json()["data"]


def add_image(client, headers, model_id, filename="a.jpg", **extra):
    payload = {"filename": filename, "size": 1024, "mimeType": "image/jpeg"}
    payload.update(extra)
    return client.post(f"/models/{model_id}/images", json=payload, headers=headers)
