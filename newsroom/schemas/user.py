from uuid import UUID
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from newsroom.constants.enums import Role


class UserResponse(BaseModel):
    """User response schema"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    email: EmailStr
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Role
    is_active: bool


class UserRoleUpdate(BaseModel):
    """User role update schema"""
    role: Role = Field(..., description="New role")
