"""Auth schemas: CurrentUser."""

import uuid

from pydantic import BaseModel, Field

from gigvora.models.enums import UserType


class CurrentUser(BaseModel):
    """Lightweight user context decoded from the bearer token."""

    user_id: uuid.UUID
    user_type: UserType = UserType.USER
    roles: list[str] = Field(default_factory=list)
    workspace_id: uuid.UUID | None = None

    @property
    def is_admin(self) -> bool:
        return "admin" in self.roles or self.user_type == UserType.ADMIN
