PASSWORD = "s3cret-password"


def signup_body(**overrides):
    body = {
        "email": "owner@example.com",
        "password": "correct-horse-1",
        "name": "Olivia Owner",
        "tenantName": "Acme Assinaturas",
        "taxId": "12.345.678/0001-90",
    }
    body.update(overrides)
    return body


async def test_signup_creates_tenant_and_owner(client):
    response = await client.post("/signup", json=signup_body())

    assert response.status_code == 201
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "owner@example.com"
    assert body["user"]["role"] == "owner"
    assert body["user"]["tenant_id"] == body["tenant"]["id"]
    assert body["tenant"]["plan"] == "CEDRO"
    assert body["tenant"]["max_users"] == 1
    assert "provider_api_key" not in body["tenant"]

    me = await client.get("/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["id"] == body["user"]["id"]


async def test_signup_with_plan(client):
    response = await client.post("/signup", json=signup_body(planId=3))

    assert response.status_code == 201
    tenant = response.json()["tenant"]
    assert tenant["plan"] == "ANGICO"
    assert tenant["max_users"] == 4
    assert tenant["monthly_doc_limit"] is None


async def test_signup_unknown_plan(client):
    response = await client.post("/signup", json=signup_body(planId="PLATINUM"))

    assert response.status_code == 400
    assert response.json()["details"][0]["field"] == "planId"


async def test_signup_duplicate_tenant_name(client):
    await client.post("/signup", json=signup_body())

    response = await client.post("/signup", json=signup_body(email="second@example.com"))

    assert response.status_code == 409
    assert "already exists" in response.json()["error"]


async def test_signup_duplicate_email(client):
    await client.post("/signup", json=signup_body())

    response = await client.post("/signup", json=signup_body(tenantName="Other Co"))

    assert response.status_code == 409


async def test_signup_validation_error_shape(client):
    response = await client.post("/signup", json=signup_body(password="short"))

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Invalid request"
    assert body["details"][0]["field"] == "password"


async def test_register_creates_detached_profile(client):
    response = await client.post(
        "/register", json={"email": "New.User@Example.com", "password": "long-enough-1"}
    )

    assert response.status_code == 201
    body = response.json()
    assert body["email"] == "new.user@example.com"
    assert body["tenant_id"] is None
    assert body["role"] == "user"


async def test_register_duplicate_email(client, make_account):
    account = await make_account()

    response = await client.post(
        "/register", json={"email": account.email, "password": "long-enough-1"}
    )

    assert response.status_code == 409


async def test_login_returns_token(client, make_account):
    account = await make_account()

    response = await client.post(
        "/login", data={"username": account.email, "password": PASSWORD}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["id"] == account.profile_id
    assert body["expires_in"] > 0


async def test_login_wrong_password(client, make_account):
    account = await make_account()

    response = await client.post(
        "/login", data={"username": account.email, "password": "wrong-password"}
    )

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid email or password"}


async def test_me_requires_token(client):
    response = await client.get("/me")

    assert response.status_code == 401


async def test_detached_profile_can_read_me_but_not_tenant(client, make_account):
    account = await make_account(detached=True)

    me = await client.get("/me", headers=account.headers)
    tenant = await client.get("/tenant", headers=account.headers)

    assert me.status_code == 200
    assert tenant.status_code == 403


async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
