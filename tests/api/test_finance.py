"""
Tests for member, contribution, transaction and expenditure endpoints.

These test the HTTP layer: status codes, branch scoping as seen by a
caller, and the error body. Business rules are tested in
test_finance_service.py and test_member_service.py.
"""

from datetime import datetime, timezone

import pytest

from tests.conftest import auth_headers, enroll, make_member, make_project

YEAR = datetime.now(timezone.utc).year


@pytest.fixture
def cashier(client, world):
    return auth_headers(client, "cashier1")


@pytest.fixture
def admin(client, world):
    return auth_headers(client, "admin")


class TestMembers:

    def test_cashier_creates_member_in_own_branch(self, client, cashier):
        response = client.post("/api/members", headers=cashier, json={
            "member_number": "M0100",
            "first_name": "Farai",
            "last_name": "Ncube",
            "branch_code": "01",
        })
        assert response.status_code == 201
        assert response.json()["age_category"] == "ADULT"

    def test_cashier_cannot_update_member(self, client, db_session, cashier):
        member = make_member(db_session)
        db_session.commit()
        response = client.patch(
            f"/api/members/{member.id}", headers=cashier, json={"first_name": "X"}
        )
        assert response.status_code == 403

    def test_enroll_returns_201(self, client, db_session, admin):
        member = make_member(db_session)
        project = make_project(db_session)
        db_session.commit()
        response = client.post(
            f"/api/members/{member.id}/projects", headers=admin,
            json={"project_id": project.id},
        )
        assert response.status_code == 201
        assert response.json()["currency_code"] == "USD"

    def test_project_includes_progress(self, client, db_session, admin):
        project = make_project(db_session)
        db_session.commit()
        response = client.get(f"/api/projects/{project.id}", headers=admin)
        assert response.status_code == 200
        assert response.json()["progress_percentage"] == 0.0


class TestContributions:

    def test_record_contribution(self, client, db_session, world, cashier):
        member = make_member(db_session)
        project = make_project(db_session)
        enroll(db_session, member, project)
        db_session.commit()

        response = client.post("/api/contributions", headers=cashier, json={
            "member_id": member.id,
            "project_id": project.id,
            "amount": "75.00",
            "currency_code": "USD",
            "payment_method_id": world["payment_method"].id,
        })
        assert response.status_code == 201
        data = response.json()
        assert data["receipt_number"] == f"01-MC-{YEAR}-000001"
        assert data["status"] == "COMPLETED"

    def test_not_enrolled_returns_404(self, client, db_session, world, cashier):
        member = make_member(db_session)
        project = make_project(db_session)
        db_session.commit()

        response = client.post("/api/contributions", headers=cashier, json={
            "member_id": member.id,
            "project_id": project.id,
            "amount": "75.00",
            "payment_method_id": world["payment_method"].id,
        })
        assert response.status_code == 404
        assert response.json()["message"] == "Member is not enrolled in this project."

    def test_negative_amount_is_validation_error(self, client, world, cashier):
        response = client.post("/api/contributions", headers=cashier, json={
            "member_id": 1,
            "project_id": 1,
            "amount": "-5",
            "payment_method_id": world["payment_method"].id,
        })
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestTransactions:

    def test_cashier_sees_only_own_branch(self, client, db_session, world, admin):
        north = make_member(db_session, branch_code="01", number="M0001")
        south = make_member(db_session, branch_code="02", number="M0002")
        db_session.commit()
        for member, head in ((north, "01R001"), (south, "02R001")):
            response = client.post("/api/transactions", headers=admin, json={
                "member_id": member.id,
                "revenue_head_code": head,
                "amount": "10.00",
                "payment_method_id": world["payment_method"].id,
            })
            assert response.status_code == 201

        cashier = auth_headers(client, "cashier1")
        data = client.get(
            "/api/transactions", params={"branch_code": "02"}, headers=cashier
        ).json()
        assert data["total"] == 1
        assert data["transactions"][0]["branch_code"] == "01"

        data = client.get("/api/transactions", headers=admin).json()
        assert data["total"] == 2


class TestExpenditures:

    def _create(self, client, headers, world):
        response = client.post("/api/expenditures", headers=headers, json={
            "expenditure_head_code": "01E001",
            "description": "Generator fuel",
            "amount": "80.00",
            "tax_amount": "12.00",
            "payment_method_id": world["payment_method"].id,
            "branch_code": "01",
        })
        assert response.status_code == 201
        return response.json()

    def test_create_pending_with_total(self, client, world):
        data = self._create(client, auth_headers(client, "supervisor1"), world)
        assert data["approval_status"] == "PENDING"
        assert data["total_amount"] == "92.00"

    def test_cashier_cannot_create(self, client, world, cashier):
        response = client.post("/api/expenditures", headers=cashier, json={
            "expenditure_head_code": "01E001",
            "description": "Generator fuel",
            "amount": "80.00",
            "payment_method_id": world["payment_method"].id,
            "branch_code": "01",
        })
        assert response.status_code == 403

    def test_approval_flow(self, client, world, admin):
        expenditure = self._create(client, auth_headers(client, "supervisor1"), world)
        url = f"/api/expenditures/{expenditure['id']}/approval"

        supervisor = auth_headers(client, "supervisor1")
        assert client.post(
            url, headers=supervisor, json={"approval_status": "APPROVED"}
        ).status_code == 403

        response = client.post(url, headers=admin, json={"approval_status": "APPROVED"})
        assert response.status_code == 200
        assert response.json()["approval_status"] == "APPROVED"

        again = client.post(url, headers=admin, json={"approval_status": "REJECTED"})
        assert again.status_code == 409
