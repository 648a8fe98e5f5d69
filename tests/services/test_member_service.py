"""
Tests for members, projects, enrollment and payment reminders.
"""

from datetime import date
from decimal import Decimal

import pytest

from branch_finance.exceptions import ConflictError, ForbiddenError, NotFoundError
from branch_finance.models.enums import AgeCategory, RecordStatus
from branch_finance.models.finance import MemberContribution
from branch_finance.schemas.member import (
    MemberCreate,
    MemberUpdate,
    ProjectCreate,
    EnrollmentCreate,
    ReminderCreate,
)
from branch_finance.services.member_service import MemberService, age_category

from tests.conftest import actor_for, enroll, make_member, make_project


@pytest.mark.parametrize("dob, expected", [
    (date(2020, 6, 1), AgeCategory.CHILD),
    (date(2010, 6, 1), AgeCategory.YOUTH),
    (date(1990, 6, 1), AgeCategory.ADULT),
    (date(1950, 6, 1), AgeCategory.ELDERLY),
])
def test_age_category(dob, expected):
    assert age_category(dob, today=date(2025, 6, 1)) == expected


def test_age_category_counts_birthday():
    # Turns 18 the day after.
    assert age_category(date(2007, 6, 2), today=date(2025, 6, 1)) == AgeCategory.YOUTH
    assert age_category(date(2007, 6, 1), today=date(2025, 6, 1)) == AgeCategory.ADULT


class TestMembers:

    def test_create_derives_age_category(self, world, db_session):
        member = MemberService(db_session).create_member(
            actor_for(world["users"]["cashier"]),
            MemberCreate(
                member_number="M1000",
                first_name="Rudo",
                last_name="Chikwanha",
                date_of_birth=date(2015, 1, 1),
                branch_code="01",
            ),
        )
        assert member.age_category == AgeCategory.CHILD

    def test_duplicate_member_number(self, world, db_session):
        make_member(db_session, number="M1000")
        db_session.commit()
        with pytest.raises(ConflictError):
            MemberService(db_session).create_member(
                actor_for(world["users"]["admin"]),
                MemberCreate(
                    member_number="M1000", first_name="A", last_name="B",
                    branch_code="01",
                ),
            )

    def test_cashier_cannot_create_in_other_branch(self, world, db_session):
        with pytest.raises(ForbiddenError):
            MemberService(db_session).create_member(
                actor_for(world["users"]["cashier"]),
                MemberCreate(
                    member_number="M2000", first_name="A", last_name="B",
                    branch_code="02",
                ),
            )

    def test_list_scoped_to_branch(self, world, db_session):
        make_member(db_session, branch_code="01", number="M0001")
        make_member(db_session, branch_code="02", number="M0002")
        db_session.commit()

        service = MemberService(db_session)
        members, total = service.list_members(actor_for(world["users"]["cashier"]))
        assert total == 1
        assert members[0].branch_code == "01"

        _, total = service.list_members(actor_for(world["users"]["admin"]))
        assert total == 2

    def test_get_member_in_other_branch_forbidden(self, world, db_session):
        member = make_member(db_session, branch_code="02")
        db_session.commit()
        with pytest.raises(ForbiddenError):
            MemberService(db_session).get_member(
                actor_for(world["users"]["cashier"]), member.id
            )

    def test_update_recomputes_age_category(self, world, db_session):
        member = make_member(db_session)
        db_session.commit()
        updated = MemberService(db_session).update_member(
            actor_for(world["users"]["supervisor"]), member.id,
            MemberUpdate(date_of_birth=date(1940, 1, 1)),
        )
        assert updated.age_category == AgeCategory.ELDERLY

    def test_delete_blocked_by_enrollment(self, world, db_session):
        member = make_member(db_session)
        project = make_project(db_session)
        enroll(db_session, member, project)
        db_session.commit()
        with pytest.raises(ConflictError):
            MemberService(db_session).delete_member(
                actor_for(world["users"]["admin"]), member.id
            )


class TestProjects:

    def test_create_and_stats(self, world, db_session):
        service = MemberService(db_session)
        admin = actor_for(world["users"]["admin"])
        project = service.create_project(admin, ProjectCreate(
            name="Roof Repair",
            target_amount=Decimal("200.00"),
            branch_code="01",
            start_date=date(2025, 1, 1),
        ))
        member = make_member(db_session)
        enroll(db_session, member, project)
        db_session.add(MemberContribution(
            receipt_number="01-MC-2025-000001",
            member_id=member.id,
            project_id=project.id,
            branch_code="01",
            amount=Decimal("50.00"),
            currency_code="USD",
            payment_method_id=world["payment_method"].id,
            processed_by=admin.id,
            status=RecordStatus.COMPLETED,
        ))
        db_session.commit()

        _, stats = service.get_project(admin, project.id)
        assert stats.member_count == 1
        assert stats.contribution_count == 1
        assert stats.total_collected == Decimal("50.00")
        assert stats.progress(project.target_amount) == 25.0

    def test_unknown_currency(self, world, db_session):
        with pytest.raises(NotFoundError, match="Currency"):
            MemberService(db_session).create_project(
                actor_for(world["users"]["admin"]),
                ProjectCreate(
                    name="Hall", target_amount=Decimal("10"), currency_code="EUR",
                    branch_code="01", start_date=date(2025, 1, 1),
                ),
            )

    def test_end_date_before_start_rejected(self):
        with pytest.raises(ValueError):
            ProjectCreate(
                name="Hall", target_amount=Decimal("10"), branch_code="01",
                start_date=date(2025, 2, 1), end_date=date(2025, 1, 1),
            )


class TestEnrollment:

    def test_enroll_defaults_to_project_target(self, world, db_session):
        member = make_member(db_session)
        project = make_project(db_session)
        db_session.commit()

        enrollment = MemberService(db_session).enroll(
            actor_for(world["users"]["supervisor"]), member.id,
            EnrollmentCreate(project_id=project.id),
        )
        assert enrollment.required_amount == project.target_amount
        assert enrollment.currency_code == project.currency_code

    def test_enroll_twice(self, world, db_session):
        member = make_member(db_session)
        project = make_project(db_session)
        enroll(db_session, member, project)
        db_session.commit()

        with pytest.raises(ConflictError, match="already associated"):
            MemberService(db_session).enroll(
                actor_for(world["users"]["supervisor"]), member.id,
                EnrollmentCreate(project_id=project.id),
            )


class TestReminders:

    def test_create_and_list_by_branch(self, world, db_session):
        north = make_member(db_session, branch_code="01", number="M0001")
        south = make_member(db_session, branch_code="02", number="M0002")
        db_session.commit()

        service = MemberService(db_session)
        admin = actor_for(world["users"]["admin"])
        for member in (north, south):
            service.create_reminder(admin, ReminderCreate(
                member_id=member.id, amount=Decimal("25.00"),
                due_date=date(2025, 3, 1),
            ))
        db_session.commit()

        assert len(service.list_reminders(admin)) == 2
        visible = service.list_reminders(actor_for(world["users"]["supervisor"]))
        assert [r.member_id for r in visible] == [north.id]
