from concurrent.futures import ThreadPoolExecutor

import pytest

from naagrik.core.config import settings

POTHOLE = {
    "title": "Pothole on Main St",
    "description": "Deep pothole",
    "category": "Road",
    "location": {"lat": 12.9, "lng": 77.6},
}


def create_issue(client, headers, payload=POTHOLE):
    return client.post("/api/issues", json=payload, headers=headers)


def test_report_upvote_and_triage_flow(client):
    registered = client.post(
        "/api/auth/register", json={"username": "alice", "email": "a@x.com", "password": "secret123"})
    assert registered.status_code == 201

    login = client.post("/api/auth/login", json={"email": "a@x.com", "password": "secret123"})
    assert login.status_code == 200
    headers = {"Authorization": f"Bearer {login.json()['token']}"}

    created = create_issue(client, headers)
    assert created.status_code == 201
    issue = created.json()
    assert issue["status"] == "OPEN"
    assert issue["upvotes"] == 0
    assert issue["user"]["username"] == "alice"

    with ThreadPoolExecutor(max_workers=2) as pool:
        responses = list(pool.map(
            lambda _: client.post(f"/api/issues/{issue['id']}/upvote"), range(2)))
    assert [r.status_code for r in responses] == [200, 200]
    assert client.get(f"/api/issues/{issue['id']}").json()["upvotes"] == 2

    forbidden = client.put(f"/api/issues/{issue['id']}/status", json={"status": "RESOLVED"}, headers=headers)
    assert forbidden.status_code == 403
    assert forbidden.json() == {"message": "Admin access required"}


def test_issue_payload_shape(client, user, auth_headers):
    body = create_issue(client, auth_headers(user), {**POTHOLE, "photo": "https://img.example/p.jpg"}).json()

    assert set(body) == {
        "id", "title", "description", "category", "photo", "location", "status",
        "upvotes", "createdAt", "updatedAt", "user", "comments",
    }
    assert body["location"] == {"lat": 12.9, "lng": 77.6}
    assert body["user"] == {
        "id": user.id, "username": "alice", "email": "a@x.com", "role": "USER", "avatar": None,
    }


def test_create_issue_requires_token(client):
    response = create_issue(client, {})

    assert response.status_code == 401
    assert response.json() == {"message": "No token, authorization denied"}


def test_create_issue_missing_fields(client, user, auth_headers):
    response = create_issue(client, auth_headers(user), {"title": "Pothole"})

    assert response.status_code == 400
    assert response.json() == {"message": "All fields are required"}


def test_create_issue_non_numeric_location(client, user, auth_headers):
    payload = {**POTHOLE, "location": {"lat": "north", "lng": 77.6}}

    response = create_issue(client, auth_headers(user), payload)

    assert response.status_code == 400
    assert set(response.json()) == {"message"}


@pytest.mark.parametrize("lat", ["NaN", "Infinity", "-Infinity"])
def test_create_issue_rejects_non_finite_location(client, user, auth_headers, lat):
    # Python's json module reads these tokens, so they reach validation as floats
    body = (
        '{"title": "Pothole", "description": "Deep", "category": "Road", '
        f'"location": {{"lat": {lat}, "lng": 77.6}}}}'
    )
    headers = {**auth_headers(user), "Content-Type": "application/json"}

    response = client.post("/api/issues", content=body, headers=headers)

    assert response.status_code == 400
    assert response.json() == {"message": "Invalid value for location.lat"}
    assert client.get("/api/issues").json() == []


@pytest.mark.parametrize("location", [{"lat": 91, "lng": 77.6}, {"lat": 12.9, "lng": -180.5}])
def test_create_issue_rejects_out_of_range_location(client, user, auth_headers, location):
    response = create_issue(client, auth_headers(user), {**POTHOLE, "location": location})

    assert response.status_code == 400


def test_integer_coordinates_are_accepted(client, user, auth_headers):
    response = create_issue(client, auth_headers(user), {**POTHOLE, "location": {"lat": 13, "lng": 77}})

    assert response.status_code == 201
    assert response.json()["location"] == {"lat": 13, "lng": 77}


def test_timestamps_carry_utc_offset(client, user, auth_headers):
    body = create_issue(client, auth_headers(user)).json()

    assert body["createdAt"].endswith("+00:00")
    assert body["updatedAt"].endswith("+00:00")


def test_create_issue_ignores_client_status_and_upvotes(client, user, auth_headers):
    payload = {**POTHOLE, "status": "RESOLVED", "upvotes": 99}

    body = create_issue(client, auth_headers(user), payload).json()

    assert body["status"] == "OPEN"
    assert body["upvotes"] == 0


def test_list_issues_is_public_and_nests_comments(client, user, other_user, auth_headers):
    issue_id = create_issue(client, auth_headers(user)).json()["id"]
    commented = client.post(
        f"/api/issues/{issue_id}/comments", json={"text": "Still there"}, headers=auth_headers(other_user))
    assert commented.status_code == 201
    assert commented.json()["user"] == {"id": other_user.id, "username": "bob", "avatar": None}

    listed = client.get("/api/issues")

    assert listed.status_code == 200
    [issue] = listed.json()
    assert issue["id"] == issue_id
    assert [c["text"] for c in issue["comments"]] == ["Still there"]
    assert issue["comments"][0]["issueId"] == issue_id


def test_comment_requires_token(client, user, auth_headers):
    issue_id = create_issue(client, auth_headers(user)).json()["id"]

    response = client.post(f"/api/issues/{issue_id}/comments", json={"text": "hi"})

    assert response.status_code == 401


def test_comment_requires_text(client, user, auth_headers):
    issue_id = create_issue(client, auth_headers(user)).json()["id"]

    response = client.post(f"/api/issues/{issue_id}/comments", json={"text": ""}, headers=auth_headers(user))

    assert response.status_code == 400
    assert response.json() == {"message": "Comment text required"}


def test_upvote_unknown_issue(client):
    response = client.post("/api/issues/does-not-exist/upvote")

    assert response.status_code == 404
    assert response.json() == {"message": "Issue not found"}


def test_upvote_can_require_auth(client, user, auth_headers, monkeypatch):
    issue_id = create_issue(client, auth_headers(user)).json()["id"]
    monkeypatch.setattr(settings, "UPVOTE_REQUIRES_AUTH", True)

    assert client.post(f"/api/issues/{issue_id}/upvote").status_code == 401
    assert client.post(f"/api/issues/{issue_id}/upvote", headers=auth_headers(user)).status_code == 200


def test_admin_changes_status(client, user, admin, auth_headers):
    issue_id = create_issue(client, auth_headers(user)).json()["id"]

    response = client.put(
        f"/api/issues/{issue_id}/status", json={"status": "IN_PROGRESS"}, headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json()["status"] == "IN_PROGRESS"


def test_invalid_status_is_rejected(client, user, admin, auth_headers):
    issue_id = create_issue(client, auth_headers(user)).json()["id"]

    response = client.put(
        f"/api/issues/{issue_id}/status", json={"status": "DONE"}, headers=auth_headers(admin))

    assert response.status_code == 400
    assert response.json() == {"message": "Invalid status"}
    assert client.get(f"/api/issues/{issue_id}").json()["status"] == "OPEN"


def test_status_change_without_token(client, user, auth_headers):
    issue_id = create_issue(client, auth_headers(user)).json()["id"]

    response = client.put(f"/api/issues/{issue_id}/status", json={"status": "RESOLVED"})

    assert response.status_code == 401


def test_status_change_unknown_issue(client, admin, auth_headers):
    response = client.put("/api/issues/missing/status", json={"status": "RESOLVED"}, headers=auth_headers(admin))
    assert response.status_code == 404


def test_delete_issue_admin_only(client, user, admin, auth_headers):
    issue_id = create_issue(client, auth_headers(user)).json()["id"]

    assert client.delete(f"/api/issues/{issue_id}").status_code == 401
    assert client.delete(f"/api/issues/{issue_id}", headers=auth_headers(user)).status_code == 403

    response = client.delete(f"/api/issues/{issue_id}", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json() == {"message": "Issue deleted"}
    assert client.get(f"/api/issues/{issue_id}").status_code == 404
    assert client.delete(f"/api/issues/{issue_id}", headers=auth_headers(admin)).status_code == 404


def test_delete_through_status_resource(client, user, admin, auth_headers):
    issue_id = create_issue(client, auth_headers(user)).json()["id"]

    response = client.delete(f"/api/issues/{issue_id}/status", headers=auth_headers(admin))

    assert response.status_code == 200
    assert client.get("/api/issues").json() == []


def test_comments_outlive_deleted_issue_until_cleanup(client, user, admin, auth_headers):
    issue_id = create_issue(client, auth_headers(user)).json()["id"]
    client.post(f"/api/issues/{issue_id}/comments", json={"text": "hi"}, headers=auth_headers(user))
    client.delete(f"/api/issues/{issue_id}", headers=auth_headers(admin))

    assert len(client.get(f"/api/issues/{issue_id}/comments").json()) == 1

    assert client.post("/api/issues/cleanup-orphaned-comments", headers=auth_headers(user)).status_code == 403
    cleanup = client.post("/api/issues/cleanup-orphaned-comments", headers=auth_headers(admin))

    assert cleanup.status_code == 200
    assert cleanup.json() == {"message": "Cleaned up 1 orphaned comment(s)", "deletedCount": 1}
    assert client.get(f"/api/issues/{issue_id}/comments").json() == []


def test_unknown_route_uses_message_body(client):
    response = client.get("/api/nothing-here")

    assert response.status_code == 404
    assert set(response.json()) == {"message"}


def test_health_reports_database(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["database"] == "connected"
