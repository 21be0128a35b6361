"""Department endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Response, status

from classroom.controllers.dependencies import AdminDep, CatalogStoreDep, PrincipalDep
from classroom.views import DepartmentCreateRequest, DepartmentResponse

router = APIRouter(prefix="/api/departments", tags=["departments"])


@router.get("/", response_model=list[DepartmentResponse])
async def list_departments(
    store: CatalogStoreDep,
    _principal: PrincipalDep,
) -> list[DepartmentResponse]:
    departments = await store.list_departments()
    return [DepartmentResponse.model_validate(department) for department in departments]


@router.post(
    "/",
    response_model=DepartmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_department(
    payload: DepartmentCreateRequest,
    store: CatalogStoreDep,
    _admin: AdminDep,
) -> DepartmentResponse:
    department = await store.create_department(
        code=payload.code.strip(),
        name=payload.name.strip(),
        description=payload.description,
    )
    return DepartmentResponse.model_validate(department)


@router.get("/{department_id}", response_model=DepartmentResponse)
async def get_department(
    department_id: int,
    store: CatalogStoreDep,
    _principal: PrincipalDep,
) -> DepartmentResponse:
    return DepartmentResponse.model_validate(await store.get_department(department_id))


@router.delete("/{department_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_department(
    department_id: int,
    store: CatalogStoreDep,
    _admin: AdminDep,
) -> Response:
    """Delete a department that no subject references any more."""

    await store.delete_department(department_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
