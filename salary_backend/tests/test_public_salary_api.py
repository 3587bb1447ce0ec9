"""
Integration tests for the public salary form.
"""

import pytest
from sqlalchemy import select, func

from salary_backend.app.models.audit_log import AuditLog
from salary_backend.app.models.salary_entry import SalaryEntry
from salary_backend.app.services.audit import AuditAction


def _submission(**overrides):
    payload = {
        "name": "Alice",
        "email": "a@x.com",
        "local_amount": "1000",
        "currency_code": "USD",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_first_submission_creates_entry(client, db_session):
    response = await client.post("/v1/public/salaries", json=_submission())

    assert response.status_code == 201
    data = response.json()
    assert data["was_created"] is True
    assert data["subject_created"] is True
    entry = data["entry"]
    assert entry["local_currency_code"] == "USD"
    assert entry["reference_amount"] == "850.00"
    assert entry["commission"] == "500.00"
    assert entry["displayed_total"] == "1350.00"

    audit = (await db_session.execute(
        select(AuditLog).where(AuditLog.action == AuditAction.SALARY_SUBMITTED)
    )).scalar_one()
    assert audit.actor_id is None
    assert audit.target_user_id == entry["subject_id"]
    assert audit.meta_data["entry_created"] is True


@pytest.mark.asyncio
async def test_resubmission_updates_existing_entry(client, db_session):
    first = (await client.post("/v1/public/salaries", json=_submission())).json()

    response = await client.post(
        "/v1/public/salaries",
        json=_submission(email="A@X.com", local_amount="2000", currency_code="usd"),
    )

    assert response.status_code == 201
    data = response.json()
    assert data["was_created"] is False
    assert data["subject_created"] is False
    assert data["entry"]["id"] == first["entry"]["id"]
    assert data["entry"]["reference_amount"] == "1700.00"
    assert data["entry"]["displayed_total"] == "2200.00"

    count = (await db_session.execute(select(func.count(SalaryEntry.id)))).scalar()
    assert count == 1


@pytest.mark.asyncio
async def test_commission_cannot_be_set_from_public_form(client):
    response = await client.post("/v1/public/salaries", json=_submission(commission="0"))

    assert response.status_code == 201
    assert response.json()["entry"]["commission"] == "500.00"


@pytest.mark.asyncio
async def test_negative_amount_returns_error_envelope(client):
    response = await client.post("/v1/public/salaries", json=_submission(local_amount="-5"))

    assert response.status_code == 422
    data = response.json()
    assert data["error_code"] == "ERR_VALIDATION_001"
    assert data["details"]["field"] == "local_amount"


@pytest.mark.asyncio
@pytest.mark.parametrize("overrides", [
    {"email": "not-an-email"},
    {"name": ""},
    {"currency_code": "US"},
    {"local_amount": "abc"},
])
async def test_malformed_submission_is_rejected(client, overrides):
    response = await client.post("/v1/public/salaries", json=_submission(**overrides))

    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION"


@pytest.mark.asyncio
async def test_over_precise_amount_is_rejected(client):
    response = await client.post("/v1/public/salaries", json=_submission(local_amount="10.005"))

    assert response.status_code == 422
    assert response.json()["details"]["field"] == "local_amount"


@pytest.mark.asyncio
async def test_unknown_currency_is_accepted_at_par(client):
    response = await client.post("/v1/public/salaries", json=_submission(currency_code="XYZ"))

    assert response.status_code == 201
    assert response.json()["entry"]["reference_amount"] == "1000.00"


@pytest.mark.asyncio
async def test_list_currencies(client):
    response = await client.get("/v1/public/currencies")

    assert response.status_code == 200
    data = response.json()
    assert data["reference_currency"] == "EUR"
    rates = {c["code"]: c["rate_to_reference"] for c in data["currencies"]}
    assert rates["USD"] == "0.85"
    assert rates["EUR"] == "1.00"
    assert list(rates) == sorted(rates)


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Process-Time" in response.headers


@pytest.mark.asyncio
async def test_health_reports_degraded_without_redis(client, redis_client):
    redis_client.unavailable = True

    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["database"] == "ok"
    assert data["redis"] == "unavailable"


@pytest.mark.asyncio
async def test_amount_beyond_decimal_precision_is_a_validation_error(client):
    response = await client.post(
        "/v1/public/salaries", json=_submission(local_amount="123456789012345678901234567.001")
    )

    assert response.status_code == 422
    assert response.json()["error_code"] == "ERR_VALIDATION_001"
    assert response.json()["details"]["field"] == "local_amount"
