"""患者接口。

列表与详情在租户约束之上再按角色收窄：医生/护士只能看到与本人有关联的患者。
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, Request, status
from sqlalchemy.orm import Session

from clinic_api.db.session import get_db
from clinic_api.dependencies import require_permission
from clinic_api.schemas.clinical import PatientCreateRequest
from clinic_api.schemas.common import ErrorResponse, SuccessResponse
from clinic_api.schemas.responses import PatientData
from clinic_api.services.clinical import create_patient, get_patient, list_patients
from clinic_api.services.context import RequestContext
from clinic_api.services.permissions import Permission
from clinic_api.utils.response import success

router = APIRouter(prefix="/patients", tags=["patients"])


@router.post(
    "",
    summary="创建患者",
    description="在当前诊所下建档，需要 patient.write 权限。",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessResponse[PatientData],
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
def create(
    payload: PatientCreateRequest,
    request: Request,
    ctx: RequestContext = Depends(require_permission(Permission.PATIENT_WRITE)),
    db: Session = Depends(get_db),
):
    patient = create_patient(db, ctx, payload.model_dump())
    db.commit()
    db.refresh(patient)
    return success(request, PatientData.model_validate(patient), message="Patient created successfully.")


@router.get(
    "",
    summary="患者列表",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[list[PatientData]],
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)
def list_(
    request: Request,
    clinic_id: UUID | None = Query(default=None, description="按建档诊所过滤。"),
    ctx: RequestContext = Depends(require_permission(Permission.PATIENT_READ)),
    db: Session = Depends(get_db),
):
    patients = list_patients(db, ctx, clinic_id=clinic_id)
    return success(request, [PatientData.model_validate(patient) for patient in patients])


@router.get(
    "/{patient_id}",
    summary="患者详情",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[PatientData],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def detail(
    request: Request,
    patient_id: UUID = Path(..., description="患者 ID。"),
    ctx: RequestContext = Depends(require_permission(Permission.PATIENT_READ)),
    db: Session = Depends(get_db),
):
    return success(request, PatientData.model_validate(get_patient(db, ctx, patient_id)))
