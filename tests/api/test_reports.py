"""
Tests for the dashboard, the financial export and the reminder sweep
endpoints.
"""

import pytest

from tests.conftest import auth_headers, make_member


@pytest.fixture
def member_transaction(client, db_session, world):
    member = make_member(db_session)
    db_session.commit()
    response = client.post(
        "/api/transactions",
        headers=auth_headers(client, "cashier1"),
        json={
            "member_id": member.id,
            "revenue_head_code": "01R001",
            "amount": "15.00",
            "payment_method_id": world["payment_method"].id,
        },
    )
    assert response.status_code == 201
    return response.json()


def test_dashboard_for_cashier(client, world, member_transaction):
    response = client.get(
        "/api/dashboard/stats", headers=auth_headers(client, "cashier1")
    )
    assert response.status_code == 200
    data = response.json()
    assert data["branch_code"] == "01"
    assert data["total_transactions"] == 1
    assert data["this_month"]["transactions"]["count"] == 1


def test_csv_export(client, world, member_transaction):
    response = client.get(
        "/api/reports/transactions-export",
        params={"format": "csv"},
        headers=auth_headers(client, "supervisor1"),
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    disposition = response.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="financial-report-')
    assert disposition.endswith('.csv"')

    lines = response.text.strip().splitlines()
    assert lines[0].startswith("Receipt Number,Date,Type")
    assert member_transaction["receipt_number"] in lines[1]


def test_excel_export_is_default(client, world):
    response = client.get(
        "/api/reports/transactions-export", headers=auth_headers(client, "admin")
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert response.content[:2] == b"PK"


def test_export_needs_permission(client, world):
    response = client.get(
        "/api/reports/transactions-export", headers=auth_headers(client, "cashier1")
    )
    assert response.status_code == 403


def test_unknown_export_type(client, world):
    response = client.get(
        "/api/reports/transactions-export",
        params={"type": "refunds"},
        headers=auth_headers(client, "admin"),
    )
    assert response.status_code == 400


def test_reminder_sweep_needs_system_config(client, world):
    response = client.post(
        "/api/reminders/sweep", headers=auth_headers(client, "supervisor1")
    )
    assert response.status_code == 403


def test_reminder_sweep_without_smtp(client, db_session, world):
    member = make_member(db_session, email="tendai@example.com")
    db_session.commit()
    admin = auth_headers(client, "admin")
    created = client.post("/api/reminders", headers=admin, json={
        "member_id": member.id,
        "amount": "20.00",
        "due_date": "2025-01-01",
    })
    assert created.status_code == 201

    response = client.post("/api/reminders/sweep", headers=admin)
    assert response.status_code == 200
    assert response.json() == {"sent": 0, "failed": 1, "skipped": 0}
