import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple
from urllib.parse import urlencode
from framework.config import settings
from framework.exceptions.handler import BusinessException
from framework.logging.logger import get_logger
from framework.repository.unit_of_work import UnitOfWork
from framework.security import Scope, create_access_token, get_password_hash, verify_password
from apps.profiles.models import Profile
from .exceptions import (
    ClientNotFoundException,
    InvalidAuthorizationRequestException,
    InvalidClientException,
    InvalidGrantException,
)
from .forms import RequestInfoForm, ScopeInfoForm
from .models import AuthorizationCode, ClientDetails
from .repository import AuthorizationCodeRepository, ClientRepository

logger = get_logger("client_service")

KNOWN_SCOPES = {scope.value for scope in Scope}
DEFAULT_CLIENT_SCOPES = [Scope.AUTHENTICATE.value, Scope.READ_LIMITED.value, Scope.ACTIVITIES_UPDATE.value]
CLIENT_ID_ALPHABET = string.ascii_uppercase + string.digits
# Long-lived tokens for clients that keep access across sessions
PERSISTENT_TOKEN_LIFETIME = timedelta(days=365 * 20)


def generate_client_id() -> str:
    return "APP-" + "".join(secrets.choice(CLIENT_ID_ALPHABET) for _ in range(16))


def parse_scope_param(scope: Optional[str]) -> List[str]:
    """Scopes are space separated; commas are tolerated. Order is kept, duplicates dropped."""
    if not scope:
        return []
    values = []
    for part in scope.replace(",", " ").split():
        if part not in values:
            values.append(part)
    return values


class ClientService:
    """Member API clients and the authorization code flow."""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    @property
    def clients(self) -> ClientRepository:
        return self.uow.get_repository(ClientRepository)

    @property
    def codes(self) -> AuthorizationCodeRepository:
        return self.uow.get_repository(AuthorizationCodeRepository)

    async def register_client(
        self,
        owner_orcid: str,
        name: str,
        redirect_uris: List[str],
        description: Optional[str] = None,
        member_name: Optional[str] = None,
        website: Optional[str] = None,
        scopes: Optional[List[str]] = None,
        persistent_tokens: bool = False,
    ) -> Tuple[ClientDetails, str]:
        """Register a client; returns it with the plain secret, which is never stored."""
        if not name or not name.strip():
            raise BusinessException("Client name is required", code=422)
        if not redirect_uris:
            raise BusinessException("At least one redirect URI is required", code=422)
        for uri in redirect_uris:
            if not uri.lower().startswith(("https://", "http://")):
                raise BusinessException(f"Invalid redirect URI: {uri}", code=422)
        scopes = scopes or list(DEFAULT_CLIENT_SCOPES)
        unknown = [s for s in scopes if s not in KNOWN_SCOPES]
        if unknown:
            raise BusinessException(f"Unknown scopes: {', '.join(unknown)}", code=422)

        client_id = None
        max_retries = 5
        for retry_count in range(max_retries):
            candidate = generate_client_id()
            if not await self.clients.get_by_id(candidate):
                client_id = candidate
                break
            logger.warning(f"Client id collision detected, regenerating ({retry_count + 1}/{max_retries})")
        if client_id is None:
            raise BusinessException("Client registration failed: could not allocate a client id", code=500)

        secret = secrets.token_urlsafe(32)
        client = ClientDetails(
            client_id=client_id,
            client_secret_hash=get_password_hash(secret),
            name=name.strip(),
            description=description,
            member_name=member_name,
            website=website,
            redirect_uris=list(redirect_uris),
            allowed_scopes=list(scopes),
            persistent_tokens_enabled=persistent_tokens,
            owner_orcid=owner_orcid,
        )
        await self.clients.create(client)
        await self.uow.commit()
        logger.info(f"Client {client_id} ({client.name}) registered by {owner_orcid}")
        return client, secret

    async def get_client(self, client_id: str) -> ClientDetails:
        client = await self.clients.get_by_id(client_id)
        if not client:
            raise ClientNotFoundException(client_id)
        return client

    async def get_request_info(
        self,
        client_id: str,
        redirect_uri: Optional[str],
        scope: Optional[str],
        response_type: Optional[str] = "code",
        state: Optional[str] = None,
        user_orcid: Optional[str] = None,
    ) -> RequestInfoForm:
        """Describe an authorization request, collecting every problem in `errors`."""
        form = RequestInfoForm(
            client_id=client_id,
            redirect_url=redirect_uri,
            response_type=response_type,
            state_param=state,
            user_id=user_orcid,
        )
        client = await self.clients.get_by_id(client_id) if client_id else None
        if client is None:
            form.errors.append(f"Unknown client: {client_id}")
            return form

        form.client_name = client.name
        form.client_description = client.description
        form.member_name = client.member_name
        form.client_have_persistent_tokens = client.persistent_tokens_enabled

        if not redirect_uri or redirect_uri not in (client.redirect_uris or []):
            form.errors.append("Redirect URI does not match any registered for this client")
        if response_type != "code":
            form.errors.append(f"Unsupported response type: {response_type}")

        requested = parse_scope_param(scope)
        if not requested:
            form.errors.append("At least one scope is required")
        for value in requested:
            if value not in KNOWN_SCOPES:
                form.errors.append(f"Unknown scope: {value}")
            elif value not in (client.allowed_scopes or []):
                form.errors.append(f"Scope not allowed for this client: {value}")
            else:
                form.scopes.append(ScopeInfoForm.for_scope(value))
        return form

    async def authorize(
        self,
        user_orcid: str,
        client_id: str,
        redirect_uri: str,
        scope: str,
        state: Optional[str] = None,
    ) -> str:
        """Researcher approves a request; returns the redirect URL carrying the one-time code."""
        form = await self.get_request_info(client_id, redirect_uri, scope, "code", state, user_orcid)
        if form.errors:
            raise InvalidAuthorizationRequestException(form.errors)

        code = AuthorizationCode(
            code=secrets.token_urlsafe(32),
            client_id=client_id,
            orcid=user_orcid,
            scopes=[s.value for s in form.scopes],
            redirect_uri=redirect_uri,
            expires_at=datetime.now(timezone.utc) + timedelta(minutes=settings.AUTHORIZATION_CODE_EXPIRE_MINUTES),
        )
        await self.codes.create(code)
        await self.uow.commit()
        logger.info(f"{user_orcid} authorized {client_id} for {form.scopes_as_string}")

        params = {"code": code.code}
        if state:
            params["state"] = state
        separator = "&" if "?" in redirect_uri else "?"
        return f"{redirect_uri}{separator}{urlencode(params)}"

    async def authenticate_client(self, client_id: str, client_secret: str) -> ClientDetails:
        client = await self.clients.get_by_id(client_id)
        if not client or not verify_password(client_secret, client.client_secret_hash):
            raise InvalidClientException()
        return client

    async def exchange_code(self, client_id: str, client_secret: str, code: str, redirect_uri: str) -> dict:
        """Trade an authorization code for an access token bound to the researcher's record."""
        client = await self.authenticate_client(client_id, client_secret)
        grant = await self.codes.get_by_id(code)
        if grant is None or grant.client_id != client.client_id:
            raise InvalidGrantException("unknown code")
        if grant.used:
            raise InvalidGrantException("code already used")
        expires_at = grant.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if expires_at < datetime.now(timezone.utc):
            raise InvalidGrantException("code expired")
        if grant.redirect_uri != redirect_uri:
            raise InvalidGrantException("redirect URI mismatch")

        if not await self.codes.redeem(code):
            await self.uow.rollback()
            raise InvalidGrantException("code already used")

        lifetime = (
            PERSISTENT_TOKEN_LIFETIME if client.persistent_tokens_enabled
            else timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        )
        access_token = create_access_token(
            data={"sub": grant.orcid, "client_id": client.client_id, "scopes": list(grant.scopes)},
            expires_delta=lifetime,
        )
        profile = await self.uow.get(Profile, grant.orcid)
        await self.uow.commit()
        logger.info(f"Issued token for {grant.orcid} to {client.client_id}")
        return {
            "access_token": access_token,
            "token_type": "bearer",
            "expires_in": int(lifetime.total_seconds()),
            "scope": " ".join(grant.scopes),
            "orcid": grant.orcid,
            "name": " ".join(filter(None, [profile.given_names, profile.family_name])) if profile else None,
        }
