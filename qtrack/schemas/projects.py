from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Field

from qtrack.models.enums import ProjectRole
from qtrack.schemas.common import RequestModel


class ProjectCreate(RequestModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=1000)


class ProjectUpdate(RequestModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=1000)


class MemberAdd(RequestModel):
    user_id: str = Field(min_length=1)
    role: ProjectRole = ProjectRole.MEMBER


class MemberRoleUpdate(RequestModel):
    role: ProjectRole


class TagCreate(RequestModel):
    name: str = Field(min_length=1, max_length=50)


class EmailInvite(RequestModel):
    type: Literal["email"] = "email"
    email: str = Field(min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")


class UserInvite(RequestModel):
    type: Literal["userId"] = "userId"
    user_id: str = Field(min_length=1)


InviteRequest = Annotated[EmailInvite | UserInvite, Field(discriminator="type")]


class InvitationResponse(RequestModel):
    token: str = Field(min_length=1)
    accept: bool
