"""
Presigned upload URLs, health check and serverless entry points
"""
import base64
import json
import pytest
from conftest import create_model
from fluxlora import lambdas


def presign(client, headers, **payload):
    return client.post("/upload/presigned", json=payload, headers=headers)


def test_training_upload_requires_model_id(client, alice):
    response = presign(client, alice["headers"], filename="a.jpg", contentType="image/jpeg", type="training")
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_training_upload_url(client, ctx, alice):
    model = create_model(client, alice["headers"])
    response = presign(client, alice["headers"], filename="Face.PNG", contentType="image/png",
                       type="training", modelId=model["id"])
    assert response.status_code == 200
    data = response.json()["data"]
    prefix = f"{alice['user']['id']}/models/{model['id']}/images/"
    assert data["key"].startswith(prefix)
    assert data["key"].endswith(".png")
    assert data["expiresIn"] == 300
    assert ctx.settings.training_images_bucket in data["uploadUrl"]
    assert data["fileUrl"].endswith(data["key"])


def test_uploaded_key_can_be_registered(client, alice):
    model = create_model(client, alice["headers"])
    key = presign(client, alice["headers"], filename="a.jpg", contentType="image/jpeg",
                  type="training", modelId=model["id"]).json()["data"]["key"]
    response = client.post(f"/models/{model['id']}/images", json={
        "filename": key.rsplit("/", 1)[-1],
        "originalName": "a.jpg",
        "size": 2048,
        "mimeType": "image/jpeg",
        "key": key,
    }, headers=alice["headers"])
    assert response.status_code == 201
    assert response.json()["data"]["storageKey"] == key


def test_training_upload_for_foreign_model(client, alice, bob):
    model = create_model(client, alice["headers"])
    response = presign(client, bob["headers"], filename="a.jpg", contentType="image/jpeg",
                       type="training", modelId=model["id"])
    assert response.status_code == 404


def test_avatar_and_generated_targets(client, ctx, alice):
    user_id = alice["user"]["id"]
    avatar = presign(client, alice["headers"], filename="me.webp", contentType="image/webp", type="avatar")
    assert avatar.json()["data"]["key"].startswith(f"{user_id}/avatars/")
    assert ctx.settings.training_images_bucket in avatar.json()["data"]["uploadUrl"]

    generated = presign(client, alice["headers"], filename="out.jpg", contentType="image/jpeg", type="generated")
    assert generated.json()["data"]["key"].startswith(f"{user_id}/generated/")
    assert ctx.settings.generated_images_bucket in generated.json()["data"]["uploadUrl"]


def test_upload_rejections(client, alice):
    headers = alice["headers"]
    assert presign(client, headers, filename="a.gif", contentType="image/gif", type="avatar").status_code == 400
    assert presign(client, headers, filename="a.jpg", contentType="image/jpeg", type="video").status_code == 400
    too_large = presign(client, headers, filename="a.jpg", contentType="image/jpeg", type="avatar",
                        size=11 * 1024 * 1024)
    assert too_large.status_code == 400
    assert client.get("/upload/presigned", headers=headers).status_code == 405
    assert presign(client, {}, filename="a.jpg", contentType="image/jpeg", type="avatar").status_code == 401


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "healthy"


def test_lambda_entry_points(ctx, monkeypatch):
    monkeypatch.setattr(lambdas, "get_context", lambda: ctx)
    lambdas.get_handler.cache_clear()
    try:
        body = json.dumps({"email": "carol@example.com", "password": "password123"})
        result = lambdas.register({
            "httpMethod": "POST",
            "path": "/auth/register",
            "headers": {"Content-Type": "application/json"},
            "body": base64.b64encode(body.encode()).decode(),
            "isBase64Encoded": True,
        }, None)
        assert result["statusCode"] == 201
        token = json.loads(result["body"])["data"]["token"]

        result = lambdas.models({
            "httpMethod": "GET",
            "path": "/models",
            "headers": {"authorization": f"Bearer {token}"},
            "pathParameters": None,
            "queryStringParameters": None,
        }, None)
        assert result["statusCode"] == 200
        assert json.loads(result["body"])["data"] == []

        preflight = lambdas.settings({"httpMethod": "OPTIONS", "path": "/settings", "headers": None}, None)
        assert preflight["statusCode"] == 200
        assert preflight["body"] == ""
        assert preflight["headers"]["Access-Control-Allow-Origin"] == "*"
    finally:
        lambdas.get_handler.cache_clear()


@pytest.mark.parametrize("body", ["not base64!!", base64.b64encode(b"\xff\xfe{}").decode()])
def test_lambda_rejects_undecodable_body(ctx, monkeypatch, body):
    monkeypatch.setattr(lambdas, "get_context", lambda: ctx)
    lambdas.get_handler.cache_clear()
    try:
        result = lambdas.register({
            "httpMethod": "POST",
            "path": "/auth/register",
            "headers": {"Content-Type": "application/json"},
            "body": body,
            "isBase64Encoded": True,
        }, None)
    finally:
        lambdas.get_handler.cache_clear()
    assert result["statusCode"] == 400
    assert json.loads(result["body"])["error"]["code"] == "INVALID_BODY"
    assert result["headers"]["Access-Control-Allow-Origin"] == "*"
