"""
Integration tests for admin user management and the audit trail.
"""

import pytest


@pytest.mark.asyncio
async def test_admin_can_list_users(client, admin_headers, employee_user):
    response = await client.get("/v1/admin/users", headers=admin_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert {u["email"] for u in data["users"]} == {"admin@example.com", "employee@example.com"}


@pytest.mark.asyncio
async def test_deactivated_user_loses_access_immediately(client, admin_headers, employee_headers, employee_user):
    assert (await client.get("/v1/auth/me", headers=employee_headers)).status_code == 200

    response = await client.post(
        f"/v1/admin/users/{employee_user.id}/deactivate",
        json={"reason": "Left the company"},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["action"] == "USER_DEACTIVATED"

    after = await client.get("/v1/auth/me", headers=employee_headers)
    assert after.status_code == 401
    assert "revoked" in after.json()["message"].lower()

    login = await client.post("/v1/auth/login", json={"email": "employee@example.com", "password": "employee-password"})
    assert login.status_code == 403


@pytest.mark.asyncio
async def test_deactivation_keeps_salary_entry(client, admin_headers):
    entry = (await client.post("/v1/public/salaries", json={
        "name": "Leaver", "email": "leaver@example.com", "local_amount": "1000", "currency_code": "EUR",
    })).json()["entry"]

    response = await client.post(
        f"/v1/admin/users/{entry['subject_id']}/deactivate", json={}, headers=admin_headers
    )
    assert response.status_code == 200

    salary = await client.get(f"/v1/admin/salaries/{entry['subject_id']}", headers=admin_headers)
    assert salary.status_code == 200
    assert salary.json()["displayed_total"] == entry["displayed_total"]

    rows = (await client.get("/v1/admin/salaries", headers=admin_headers)).json()["items"]
    assert rows[0]["is_active"] is False


@pytest.mark.asyncio
async def test_reactivated_user_can_log_in_again(client, admin_headers, employee_user, login_as):
    await client.post(f"/v1/admin/users/{employee_user.id}/deactivate", json={}, headers=admin_headers)

    response = await client.post(f"/v1/admin/users/{employee_user.id}/reactivate", json={}, headers=admin_headers)
    assert response.status_code == 200

    headers = await login_as("employee@example.com", "employee-password")
    assert (await client.get("/v1/auth/me", headers=headers)).status_code == 200


@pytest.mark.asyncio
async def test_admin_cannot_deactivate_self(client, admin_headers, admin_user):
    response = await client.post(f"/v1/admin/users/{admin_user.id}/deactivate", json={}, headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_reactivating_active_user_is_rejected(client, admin_headers, employee_user):
    response = await client.post(f"/v1/admin/users/{employee_user.id}/reactivate", json={}, headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_unknown_user(client, admin_headers):
    response = await client.post("/v1/admin/users/9999/deactivate", json={}, headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_audit_trail_filters(client, admin_headers, employee_user):
    await client.post(f"/v1/admin/users/{employee_user.id}/deactivate", json={"reason": "Test"}, headers=admin_headers)

    response = await client.get(
        "/v1/admin/audit-logs",
        params={"user_id": employee_user.id, "action": "USER_DEACTIVATED"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    logs = response.json()["logs"]
    assert len(logs) == 1
    assert logs[0]["actor_email"] == "admin@example.com"
    assert logs[0]["meta_data"] == {"reason": "Test"}

    logins = (await client.get(
        "/v1/admin/audit-logs", params={"action": "LOGIN_SUCCESS"}, headers=admin_headers
    )).json()["logs"]
    assert len(logins) == 1


@pytest.mark.asyncio
async def test_admin_can_rename_subject(client, admin_headers):
    entry = (await client.post("/v1/public/salaries", json={
        "name": "Jon Smiht", "email": "jon@example.com", "local_amount": "1000", "currency_code": "EUR",
    })).json()["entry"]

    response = await client.patch(
        f"/v1/admin/users/{entry['subject_id']}", json={"name": "  Jon Smith "}, headers=admin_headers
    )

    assert response.status_code == 200
    assert response.json()["name"] == "Jon Smith"
    assert response.json()["email"] == "jon@example.com"

    rows = (await client.get("/v1/admin/salaries", headers=admin_headers)).json()["items"]
    assert [(row["name"], row["displayed_total"]) for row in rows] == [("Jon Smith", entry["displayed_total"])]

    logs = (await client.get(
        "/v1/admin/audit-logs",
        params={"user_id": entry["subject_id"], "action": "USER_UPDATED"},
        headers=admin_headers,
    )).json()["logs"]
    assert len(logs) == 1
    assert logs[0]["meta_data"] == {"old_name": "Jon Smiht", "new_name": "Jon Smith"}


@pytest.mark.asyncio
async def test_rename_to_same_name_is_not_audited(client, admin_headers, employee_user):
    response = await client.patch(
        f"/v1/admin/users/{employee_user.id}", json={"name": employee_user.name}, headers=admin_headers
    )
    assert response.status_code == 200

    logs = (await client.get(
        "/v1/admin/audit-logs", params={"action": "USER_UPDATED"}, headers=admin_headers
    )).json()["logs"]
    assert logs == []


@pytest.mark.asyncio
async def test_rename_rejects_blank_name(client, admin_headers, employee_user):
    response = await client.patch(f"/v1/admin/users/{employee_user.id}", json={"name": "   "}, headers=admin_headers)

    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION_001"
    assert response.json()["details"]["field"] == "name"


@pytest.mark.asyncio
async def test_rename_unknown_user(client, admin_headers):
    response = await client.patch("/v1/admin/users/9999", json={"name": "Ghost"}, headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_employee_cannot_rename(client, employee_headers, employee_user):
    response = await client.patch(f"/v1/admin/users/{employee_user.id}", json={"name": "Boss"}, headers=employee_headers)

    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_FORBIDDEN"
