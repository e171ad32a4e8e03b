"""
Settings endpoints and API key handling
"""
from conftest import bearer
from fluxlora.auth import Identity
from fluxlora.auth.secrets import SecretBox


def test_get_settings_for_registered_user(client, alice):
    response = client.get("/settings", headers=alice["headers"])
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["email"] == "alice@example.com"
    assert data["apiKeys"] == {}
    assert data["preferences"]["theme"] == "system"
    assert "passwordHash" not in data


def test_get_settings_creates_defaults(client, ctx):
    token = ctx.tokens.issue(Identity(id="ghost-id", email="ghost@example.com"))
    assert ctx.store.get(ctx.settings.accounts_table, "ghost-id") is None

    response = client.get("/settings", headers=bearer(token))
    assert response.status_code == 200
    assert response.json()["data"]["email"] == "ghost@example.com"
    assert ctx.store.get(ctx.settings.accounts_table, "ghost-id")["userId"] == "ghost-id"


def test_api_keys_are_encrypted_and_masked(client, ctx, alice):
    secret = "fal-sk-0123456789abcd"
    response = client.put("/settings", json={"apiKeys": {"falaiApiKey": secret}}, headers=alice["headers"])
    assert response.status_code == 200
    assert secret not in response.text
    assert response.json()["data"]["apiKeys"] == {"falaiApiKey": "********abcd"}

    stored = ctx.store.get(ctx.settings.accounts_table, alice["user"]["id"])["apiKeys"]["falaiApiKey"]
    assert stored.startswith("v1:")
    assert secret not in stored
    assert ctx.secrets.decrypt(stored, f"{alice['user']['id']}:falaiApiKey") == secret

    fetched = client.get("/settings", headers=alice["headers"])
    assert secret not in fetched.text
    assert fetched.json()["data"]["apiKeys"] == {"falaiApiKey": "********abcd"}


def test_api_keys_merge_and_remove(client, alice):
    headers = alice["headers"]
    client.put("/settings", json={"apiKeys": {"falaiApiKey": "fal-key-11112222"}}, headers=headers)
    response = client.put("/settings", json={"apiKeys": {"replicate": "rep-key-33334444"}}, headers=headers)
    assert set(response.json()["data"]["apiKeys"]) == {"falaiApiKey", "replicate"}

    response = client.put("/settings", json={"apiKeys": {"falaiApiKey": ""}}, headers=headers)
    assert set(response.json()["data"]["apiKeys"]) == {"replicate"}


def test_settings_update_whitelist_and_validation(client, alice):
    headers = alice["headers"]
    assert client.put("/settings", json={"passwordHash": "x", "email": "e@x.com"}, headers=headers).status_code == 400
    assert client.put("/settings", json={"apiKeys": {"bad name!": "k"}}, headers=headers).status_code == 400

    response = client.put("/settings", json={"displayName": "Alice A", "passwordHash": "x"}, headers=headers)
    assert response.status_code == 200
    assert response.json()["data"]["displayName"] == "Alice A"

    login = client.post("/auth/login", json={"email": "alice@example.com", "password": "password123"})
    assert login.status_code == 200


def test_settings_methods(client, alice):
    assert client.post("/settings", json={}, headers=alice["headers"]).status_code == 405
    assert client.get("/settings").status_code == 401


def test_api_keys_masked_without_encryption_key(client, ctx, alice, monkeypatch):
    client.put("/settings", json={"apiKeys": {"falaiApiKey": "fal-sk-0123456789abcd"}}, headers=alice["headers"])
    monkeypatch.setattr(ctx, "secrets", SecretBox(None))

    response = client.get("/settings", headers=alice["headers"])
    assert response.status_code == 200
    assert response.json()["data"]["apiKeys"] == {"falaiApiKey": "********"}
    assert client.put("/settings", json={"apiKeys": {"replicate": "rep-key-33334444"}},
                      headers=alice["headers"]).status_code == 500
