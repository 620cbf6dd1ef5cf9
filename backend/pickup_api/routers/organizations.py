from fastapi import APIRouter, Depends

from pickup_api.deps import get_directory
from pickup_api.schemas.auth import Caller
from pickup_api.schemas.collectors import OrganizationCreate, OrganizationOut
from pickup_api.services.collectors import CollectorDirectory
from pickup_api.utils.security import get_current_caller, require_roles

router = APIRouter(prefix="/organizations", tags=["organizations"])

@router.get("", response_model=list[OrganizationOut])
def list_organizations(
    caller: Caller = Depends(get_current_caller),
    directory: CollectorDirectory = Depends(get_directory),
):
    return directory.list_organizations()

@router.post("", status_code=201, response_model=OrganizationOut)
def create_organization(
    payload: OrganizationCreate,
    caller: Caller = Depends(get_current_caller),
    directory: CollectorDirectory = Depends(get_directory),
):
    require_roles(caller, "OPERATOR")
    return directory.create_organization(payload.name, payload.contact_phone, payload.address)

@router.get("/{organization_id}", response_model=OrganizationOut)
def get_organization(
    organization_id: str,
    caller: Caller = Depends(get_current_caller),
    directory: CollectorDirectory = Depends(get_directory),
):
    return directory.get_organization(organization_id)
