"""Forms shown on the authorization page."""

from typing import List, Optional
from pydantic import BaseModel, Field, computed_field
from framework.security import Scope

SCOPE_DESCRIPTIONS = {
    Scope.AUTHENTICATE.value: ("Authenticate", "Get your ORCID iD"),
    Scope.READ_PUBLIC.value: ("Read public", "Read your public information"),
    Scope.READ_LIMITED.value: ("Read limited", "Read your information with visibility set to trusted parties"),
    Scope.ACTIVITIES_UPDATE.value: ("Update activities", "Add/update your research activities (works)"),
    Scope.PERSON_UPDATE.value: ("Update person", "Add/update other information about you"),
    Scope.OPENID.value: ("OpenID", "Sign in with your ORCID iD"),
}


class ScopeInfoForm(BaseModel):
    value: str
    name: str
    description: str

    @classmethod
    def for_scope(cls, value: str) -> "ScopeInfoForm":
        name, description = SCOPE_DESCRIPTIONS[value]
        return cls(value=value, name=name, description=description)


class RequestInfoForm(BaseModel):
    """An OAuth authorization request as understood by the registry; problems are listed in `errors`."""
    errors: List[str] = Field(default_factory=list)
    scopes: List[ScopeInfoForm] = Field(default_factory=list)
    client_description: Optional[str] = None
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    member_name: Optional[str] = None
    redirect_url: Optional[str] = None
    response_type: Optional[str] = None
    state_param: Optional[str] = None
    user_id: Optional[str] = None
    client_have_persistent_tokens: bool = False

    @computed_field
    @property
    def scopes_as_string(self) -> str:
        return " ".join(scope.value for scope in self.scopes).strip()
