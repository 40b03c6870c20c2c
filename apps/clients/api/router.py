from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from typing import List, Optional
from framework.dependencies import get_uow
from framework.repository.unit_of_work import UnitOfWork
from framework.response import ResponseModel
from framework.security import CurrentUser, get_current_user
from ..service import ClientService

router = APIRouter()

class ClientRegistrationSchema(BaseModel):
    name: str
    redirect_uris: List[str]
    description: Optional[str] = None
    member_name: Optional[str] = None
    website: Optional[str] = None
    scopes: List[str] = Field(default_factory=list)
    persistent_tokens: bool = False

class AuthorizeSchema(BaseModel):
    client_id: str
    redirect_uri: str
    scope: str
    state: Optional[str] = None

class TokenSchema(BaseModel):
    grant_type: str
    client_id: str
    client_secret: str
    code: str
    redirect_uri: str

def get_client_service(uow: UnitOfWork = Depends(get_uow)) -> ClientService:
    return ClientService(uow)

def _owner_session(user: CurrentUser) -> Optional[dict]:
    if user.is_api_request:
        return ResponseModel.error(message="This action requires the researcher's own session", code=403)
    return None

@router.post("/clients")
async def register_client(
    data: ClientRegistrationSchema,
    user: CurrentUser = Depends(get_current_user),
    service: ClientService = Depends(get_client_service)
):
    """Register a client application; the secret is only shown once."""
    denied = _owner_session(user)
    if denied:
        return denied
    client, secret = await service.register_client(
        owner_orcid=user.orcid,
        name=data.name,
        redirect_uris=data.redirect_uris,
        description=data.description,
        member_name=data.member_name,
        website=data.website,
        scopes=data.scopes or None,
        persistent_tokens=data.persistent_tokens,
    )
    return ResponseModel.success(data={
        "client_id": client.client_id,
        "client_secret": secret,
        "name": client.name,
        "redirect_uris": client.redirect_uris,
        "scopes": client.allowed_scopes,
    })

@router.get("/authorize")
async def request_info(
    client_id: str,
    redirect_uri: Optional[str] = None,
    scope: Optional[str] = None,
    response_type: str = "code",
    state: Optional[str] = None,
    user: CurrentUser = Depends(get_current_user),
    service: ClientService = Depends(get_client_service)
):
    """What the authorization page shows the researcher before they approve."""
    form = await service.get_request_info(client_id, redirect_uri, scope, response_type, state, user.orcid)
    return ResponseModel.success(data=form.model_dump())

@router.post("/authorize")
async def authorize(
    data: AuthorizeSchema,
    user: CurrentUser = Depends(get_current_user),
    service: ClientService = Depends(get_client_service)
):
    denied = _owner_session(user)
    if denied:
        return denied
    redirect_url = await service.authorize(user.orcid, data.client_id, data.redirect_uri, data.scope, data.state)
    return ResponseModel.success(data={"redirect_url": redirect_url})

@router.post("/token")
async def token(
    data: TokenSchema,
    service: ClientService = Depends(get_client_service)
):
    if data.grant_type != "authorization_code":
        return ResponseModel.error(message=f"Unsupported grant type: {data.grant_type}", code=400)
    payload = await service.exchange_code(data.client_id, data.client_secret, data.code, data.redirect_uri)
    return ResponseModel.success(data=payload)
