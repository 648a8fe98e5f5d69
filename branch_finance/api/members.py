"""
Member and project API endpoints.

Lists are silently narrowed to the caller's branch unless the role
holds read_all; single records in another branch answer 403.
"""

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from branch_finance.exceptions import AppError
from branch_finance.models.base import get_db
from branch_finance.models.enums import AgeCategory, ProjectStatus
from branch_finance.models.member import Project
from branch_finance.api.deps import require, request_meta
from branch_finance.services.audit_service import RequestMeta
from branch_finance.services.member_service import MemberService, ProjectStats
from branch_finance.services.permissions import Actor
from branch_finance.schemas.member import (
    MemberCreate,
    MemberUpdate,
    MemberResponse,
    MemberList,
    ProjectCreate,
    ProjectUpdate,
    ProjectResponse,
    EnrollmentCreate,
    EnrollmentResponse,
)

router = APIRouter(prefix="/api", tags=["Members"])


def _project_response(project: Project, stats: ProjectStats) -> ProjectResponse:
    return ProjectResponse.model_validate(project).model_copy(update={
        "member_count": stats.member_count,
        "contribution_count": stats.contribution_count,
        "total_collected": stats.total_collected,
        "progress_percentage": stats.progress(project.target_amount),
    })


# --- Member Endpoints ---

@router.post("/members", response_model=MemberResponse, status_code=201)
def create_member(
    request: MemberCreate,
    actor: Actor = Depends(require("members", "create")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    """
    Register a member.

    When a date of birth is given and no age category, the category
    is derived from the age.
    """
    service = MemberService(db)
    try:
        member = service.create_member(actor, request, meta)
        db.commit()
        return member
    except AppError:
        db.rollback()
        raise


@router.get("/members", response_model=MemberList)
def list_members(
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    branch_code: str | None = None,
    age_category: AgeCategory | None = None,
    is_active: bool | None = None,
    search: str | None = None,
    actor: Actor = Depends(require("members", "read")),
    db: Session = Depends(get_db),
):
    members, total = MemberService(db).list_members(
        actor, limit, offset, branch_code, age_category, is_active, search
    )
    return MemberList(total=total, limit=limit, offset=offset, members=members)


@router.get("/members/{member_id}", response_model=MemberResponse)
def get_member(
    member_id: int,
    actor: Actor = Depends(require("members", "read")),
    db: Session = Depends(get_db),
):
    return MemberService(db).get_member(actor, member_id)


@router.patch("/members/{member_id}", response_model=MemberResponse)
def update_member(
    member_id: int,
    request: MemberUpdate,
    actor: Actor = Depends(require("members", "update")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    service = MemberService(db)
    try:
        member = service.update_member(actor, member_id, request, meta)
        db.commit()
        return member
    except AppError:
        db.rollback()
        raise


@router.delete("/members/{member_id}", status_code=204)
def delete_member(
    member_id: int,
    actor: Actor = Depends(require("members", "delete")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    """Delete a member with no contributions or transactions."""
    service = MemberService(db)
    try:
        service.delete_member(actor, member_id, meta)
        db.commit()
    except AppError:
        db.rollback()
        raise
    return Response(status_code=204)


@router.post(
    "/members/{member_id}/projects",
    response_model=EnrollmentResponse,
    status_code=201,
)
def enroll_member(
    member_id: int,
    request: EnrollmentCreate,
    actor: Actor = Depends(require("members", "update")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    """Enroll a member in a project so contributions can be recorded."""
    service = MemberService(db)
    try:
        enrollment = service.enroll(actor, member_id, request, meta)
        db.commit()
        return enrollment
    except AppError:
        db.rollback()
        raise


# --- Project Endpoints ---

@router.post("/projects", response_model=ProjectResponse, status_code=201)
def create_project(
    request: ProjectCreate,
    actor: Actor = Depends(require("projects", "create")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    service = MemberService(db)
    try:
        project = service.create_project(actor, request, meta)
        db.commit()
        return _project_response(project, service.project_stats(project.id))
    except AppError:
        db.rollback()
        raise


@router.get("/projects", response_model=list[ProjectResponse])
def list_projects(
    branch_code: str | None = None,
    is_active: bool | None = None,
    status: ProjectStatus | None = None,
    actor: Actor = Depends(require("projects", "read")),
    db: Session = Depends(get_db),
):
    """List projects with collected totals and progress toward target."""
    rows = MemberService(db).list_projects(actor, branch_code, is_active, status)
    return [_project_response(project, stats) for project, stats in rows]


@router.get("/projects/{project_id}", response_model=ProjectResponse)
def get_project(
    project_id: int,
    actor: Actor = Depends(require("projects", "read")),
    db: Session = Depends(get_db),
):
    project, stats = MemberService(db).get_project(actor, project_id)
    return _project_response(project, stats)


@router.patch("/projects/{project_id}", response_model=ProjectResponse)
def update_project(
    project_id: int,
    request: ProjectUpdate,
    actor: Actor = Depends(require("projects", "update")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    service = MemberService(db)
    try:
        project = service.update_project(actor, project_id, request, meta)
        db.commit()
        return _project_response(project, service.project_stats(project.id))
    except AppError:
        db.rollback()
        raise


@router.delete("/projects/{project_id}", status_code=204)
def delete_project(
    project_id: int,
    actor: Actor = Depends(require("projects", "delete")),
    db: Session = Depends(get_db),
    meta: RequestMeta = Depends(request_meta),
):
    service = MemberService(db)
    try:
        service.delete_project(actor, project_id, meta)
        db.commit()
    except AppError:
        db.rollback()
        raise
    return Response(status_code=204)
