ALLOWED = "http://localhost:5173"


async def test_preflight_from_allowed_origin(client):
    response = await client.options(
        "/signer",
        headers={
            "Origin": ALLOWED,
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "authorization, content-type",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == ALLOWED


async def test_preflight_from_unknown_origin_rejected(client):
    response = await client.options(
        "/signer",
        headers={
            "Origin": "https://evil.example.com",
            "Access-Control-Request-Method": "POST",
        },
    )

    assert response.status_code == 400
    assert "access-control-allow-origin" not in response.headers


async def test_simple_request_from_unknown_origin_gets_no_cors_header(client):
    response = await client.get("/health", headers={"Origin": "https://evil.example.com"})

    assert response.status_code == 200
    assert "access-control-allow-origin" not in response.headers
