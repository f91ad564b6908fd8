import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class CreateUserRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8, max_length=72)

    @field_validator("password")
    def validate_password(cls, v):
        if not re.search("[A-Z]", v):
            raise ValueError("Password must contain at least one uppercase character")
        if not re.search("[a-z]", v):
            raise ValueError("Password must contain at least one lowercase character")
        if not re.search("[0-9]", v):
            raise ValueError("Password must contain at least one digit")
        return v


class UserResponse(BaseModel):
    id: int
    name: str
    email: EmailStr
    role: str
    student_id: Optional[str] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
