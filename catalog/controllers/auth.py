import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from jose import JWTError
from sqlalchemy.orm import Session

from catalog.database import get_db
from catalog.oauth2 import (
    authenticate_user,
    create_access_token,
    decode_token,
    get_current_user_jwt,
)
from catalog.schemas.auth import CurrentUser, TokenResponse, UserLogin
from catalog.schemas.user import CreateUserRequest, UserResponse
from catalog.services.token_blacklist import add_to_blacklist
from catalog.services.user_service import create_student

logger = logging.getLogger("catalog")

router = APIRouter(prefix="/auth", tags=["auth"])


### ROUTE FOR REGISTRATION ###
@router.post(
    "/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED
)
async def register(
    create_user_request: CreateUserRequest, db: Session = Depends(get_db)
):
    user = create_student(db, create_user_request)
    logger.info("Registered user %s", user.email)

    access_token = create_access_token(user.email, user.id, user.role)
    return TokenResponse(
        message="Registration successful",
        access_token=access_token,
        user=UserResponse.model_validate(user),
    )


### ROUTE FOR LOGIN ###
@router.post("/login", response_model=TokenResponse)
async def login(login_request: UserLogin, db: Session = Depends(get_db)):
    """
    Login using email and password to get access token.
    """
    user = authenticate_user(login_request.email, login_request.password, db)

    access_token = create_access_token(user.email, user.id, user.role)
    return TokenResponse(
        access_token=access_token,
        user=UserResponse.model_validate(user),
    )


@router.get("/me", response_model=CurrentUser)
async def get_info(current_user: dict = Depends(get_current_user_jwt)):
    return {
        "id": current_user["user_id"],
        "email": current_user["email"],
        "role": current_user["role"],
    }


@router.post("/logout", status_code=status.HTTP_200_OK)
async def logout(current_user: dict = Depends(get_current_user_jwt)):
    token = current_user["token"]
    # Blacklist the token for the rest of its lifetime
    try:
        payload = decode_token(token)
        exp = payload.get("exp")
        if exp:
            remaining_time = int(exp - datetime.now(timezone.utc).timestamp())
            if remaining_time > 0:
                add_to_blacklist(token, remaining_time)
    except JWTError:
        pass  # Token is already invalid, no need to blacklist

    return {"message": "Successfully logged out"}
