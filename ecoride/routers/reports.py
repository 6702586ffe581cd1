"""
Reports Router

User safety reports.
"""

from fastapi import APIRouter, Depends, status

from ecoride.dependencies import get_current_user, get_report_service
from ecoride.models.report import Report, ReportCreate
from ecoride.models.user import User
from ecoride.services.report_service import ReportService


router = APIRouter()


@router.post("", response_model=Report, status_code=status.HTTP_201_CREATED)
async def create_report(
    data: ReportCreate,
    current_user: User = Depends(get_current_user),
    reports: ReportService = Depends(get_report_service),
):
    """
    Report another user for harassment, no-show, fraud or other issues.

    Reports are reviewed by admins.
    """
    return await reports.create_report(current_user, data)
