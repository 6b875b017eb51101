async def test_root_and_health_use_the_envelope(client):
    root = await client.get("/")
    health = await client.get("/health")

    assert root.status_code == health.status_code == 200
    for body in (root.json(), health.json()):
        assert body["success"] is True
        assert body["timestamp"].endswith("Z")
    assert root.json()["data"]["docs"] == "/docs"
    assert health.json()["data"]["status"] == "ok"


async def test_unknown_route_uses_error_envelope(client):
    res = await client.get("/api/v1/does-not-exist")

    assert res.status_code == 404
    body = res.json()
    assert body["success"] is False
    assert body["error_code"] == "NOT_FOUND"
    assert body["timestamp"].endswith("Z")


async def test_success_envelope_shape(client, student_headers):
    res = await client.get("/api/v1/student/courses", headers=student_headers)

    body = res.json()
    assert body["success"] is True
    assert set(body["data"]) >= {"page", "size", "total_items", "total_pages", "items"}
    assert "timestamp" in body
