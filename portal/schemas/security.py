from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from portal.security.permissions import list_permissions


class RoleIn(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    hierarchy: int = 0
    permissions: int = Field(default=0, ge=0)


class RoleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    hierarchy: int
    permissions: int


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    login: str
    email: str
    promo: int | None
    permissions: int
    admin: bool


class MembershipOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    association_id: int | None
    list_id: int | None
    role_name: str
    permissions: int
    hierarchy: int
    visible: bool


class MeOut(BaseModel):
    """The session principal as seen by the client (effective, elevated permissions)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    login: str
    email: str
    promo: int | None
    permissions: int
    permission_names: list[str] = []
    memberships: list[MembershipOut]

    @model_validator(mode="after")
    def _fill_permission_names(self) -> MeOut:
        self.permission_names = [p.name for p in list_permissions(self.permissions)]
        return self


class MemberIn(BaseModel):
    user_id: int
    association_id: int | None = None
    list_id: int | None = None
    role_name: str = Field(min_length=1, max_length=100)
    permissions: int = Field(default=0, ge=0)
    hierarchy: int = 0
    visible: bool = True


class MemberOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    association_id: int | None
    list_id: int | None
    role_name: str
    permissions: int
    hierarchy: int
    visible: bool
