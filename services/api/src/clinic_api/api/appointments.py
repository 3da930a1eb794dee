"""预约接口。"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from clinic_api.db.session import get_db
from clinic_api.dependencies import require_permission
from clinic_api.schemas.clinical import AppointmentCreateRequest
from clinic_api.schemas.common import ErrorResponse, SuccessResponse
from clinic_api.schemas.responses import AppointmentData
from clinic_api.services.clinical import create_appointment, list_appointments
from clinic_api.services.context import RequestContext
from clinic_api.services.permissions import Permission
from clinic_api.utils.response import success

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.post(
    "",
    summary="创建预约",
    description="患者与医生/护士必须属于当前租户。",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessResponse[AppointmentData],
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)
def create(
    payload: AppointmentCreateRequest,
    request: Request,
    ctx: RequestContext = Depends(require_permission(Permission.APPOINTMENT_WRITE)),
    db: Session = Depends(get_db),
):
    appointment = create_appointment(db, ctx, payload.model_dump())
    db.commit()
    db.refresh(appointment)
    return success(request, AppointmentData.model_validate(appointment), message="Appointment created successfully.")


@router.get(
    "",
    summary="预约列表",
    description="医生仅见本人接诊的预约，护士仅见本人协助的预约。",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[AppointmentData]],
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
def list_(
    request: Request,
    clinic_id: UUID | None = Query(default=None, description="按诊所过滤。"),
    patient_id: UUID | None = Query(default=None, description="按患者过滤。"),
    ctx: RequestContext = Depends(require_permission(Permission.APPOINTMENT_READ)),
    db: Session = Depends(get_db),
):
    appointments = list_appointments(db, ctx, clinic_id=clinic_id, patient_id=patient_id)
    return success(request, [AppointmentData.model_validate(item) for item in appointments])
