from pydantic import BaseModel, EmailStr

from catalog.schemas.user import UserResponse


class UserLogin(BaseModel):
    """Schema for login request"""
    email: EmailStr
    password: str

    class Config:
        json_schema_extra = {
            "example": {
                "email": "user@example.com",
                "password": "yourpassword"
            }
        }


class TokenResponse(BaseModel):
    """Schema for register and login responses"""
    message: str = "Login successful"
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class CurrentUser(BaseModel):
    id: int
    email: EmailStr
    role: str
