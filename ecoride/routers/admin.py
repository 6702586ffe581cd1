"""
Admin Router

Dashboard statistics, account management, traveller verification review,
user reports and post-commit failure reconciliation.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ecoride.dependencies import (
    get_admin_service,
    get_admin_user,
    get_report_service,
    get_task_failures,
    get_user_service,
)
from ecoride.models.dashboard import AdminDashboard, PlatformStats
from ecoride.models.report import Report, ReportStatus, ReportStatusUpdate
from ecoride.models.task_failure import TaskFailure
from ecoride.models.user import User
from ecoride.repositories.base import TaskFailureRepository
from ecoride.services.admin_service import AdminService
from ecoride.services.report_service import ReportService
from ecoride.services.user_service import UserService


router = APIRouter()


# =============================================================================
# Dashboard
# =============================================================================

@router.get("/dashboard", response_model=AdminDashboard)
async def get_dashboard(
    limit: int = Query(50, ge=1, le=200),
    admin: User = Depends(get_admin_user),
    service: AdminService = Depends(get_admin_service),
):
    """Platform counters plus the newest users, trips, bookings and reports."""
    return await service.get_dashboard(admin, limit=limit)


@router.get("/stats", response_model=PlatformStats)
async def get_stats(
    admin: User = Depends(get_admin_user),
    service: AdminService = Depends(get_admin_service),
):
    return await service.get_stats()


# =============================================================================
# Users
# =============================================================================

@router.get("/users", response_model=List[User])
async def list_users(
    limit: int = Query(50, ge=1, le=500),
    admin: User = Depends(get_admin_user),
    users: UserService = Depends(get_user_service),
):
    """Accounts, newest first."""
    return await users.list_users(admin, limit=limit)


@router.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    admin: User = Depends(get_admin_user),
    users: UserService = Depends(get_user_service),
):
    await users.delete_user(admin, user_id)


@router.patch("/verifications/{user_id}/approve", response_model=User)
async def approve_verification(
    user_id: str,
    admin: User = Depends(get_admin_user),
    users: UserService = Depends(get_user_service),
):
    """Verify a pending traveller and raise their trust score."""
    return await users.approve_verification(admin, user_id)


@router.patch("/verifications/{user_id}/reject", response_model=User)
async def reject_verification(
    user_id: str,
    admin: User = Depends(get_admin_user),
    users: UserService = Depends(get_user_service),
):
    return await users.reject_verification(admin, user_id)


# =============================================================================
# Reports
# =============================================================================

@router.get("/reports", response_model=List[Report])
async def list_reports(
    status_filter: Optional[ReportStatus] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    admin: User = Depends(get_admin_user),
    reports: ReportService = Depends(get_report_service),
):
    """Reports, newest first, optionally filtered by status."""
    return await reports.list_reports(admin, status=status_filter, limit=limit)


@router.patch("/reports/{report_id}/status", response_model=Report)
async def update_report_status(
    report_id: str,
    data: ReportStatusUpdate,
    admin: User = Depends(get_admin_user),
    reports: ReportService = Depends(get_report_service),
):
    """Move a report to REVIEWED or CLOSED."""
    return await reports.update_status(admin, report_id, data.status, data.note)


# =============================================================================
# Reconciliation
# =============================================================================

@router.get("/task-failures", response_model=List[TaskFailure])
async def list_task_failures(
    limit: int = Query(100, ge=1, le=500),
    admin: User = Depends(get_admin_user),
    failures: TaskFailureRepository = Depends(get_task_failures),
):
    """
    Recent post-commit failures, newest first.

    e.g. a trip that completed while some reward awards failed.
    """
    return await failures.find_recent(limit=limit)
