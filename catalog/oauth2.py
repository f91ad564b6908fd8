from datetime import timezone, datetime, timedelta
from typing import Optional

from fastapi import Depends, HTTPException
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlalchemy.orm import Session
from starlette import status

from catalog.config import config
from catalog.database import get_db
from catalog.models import User
from catalog.security.json_bearer import OAuth2PasswordBearerWithJSON
from catalog.services.token_blacklist import is_blacklisted

bcrypt_context = CryptContext(
    schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=config.BCRYPT_ROUNDS
)

oauth2_bearer = OAuth2PasswordBearerWithJSON(
    tokenUrl="auth/login",
    scheme_name="JWT",
    description="Paste the access_token returned by /auth/login",
    auto_error=True,
)

SECRET_KEY = config.SECRET_KEY
ALGORITHM = config.ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = config.ACCESS_TOKEN_EXPIRE_MINUTES


def hash_password(password: str) -> str:
    return bcrypt_context.hash(password)


### Check if user is in our DATABASE ###
def authenticate_user(email: str, password: str, db: Session) -> User:
    user = db.query(User).filter(User.email == email).first()
    if not user or not bcrypt_context.verify(password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Account is disabled"
        )
    return user


### Create a JWT token for user ###
def create_access_token(
    email: str,
    user_id: int,
    user_role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    if expires_delta is None:
        expires_delta = timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    encode = {
        "sub": email,
        "id": user_id,
        "role": user_role,
        "token_type": "access_token",
    }
    expire = datetime.now(timezone.utc) + expires_delta
    encode.update({"exp": expire})
    return jwt.encode(encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])


### Checking if the JWT Token of our user is correct ###
async def get_current_user_jwt(
    token: str = Depends(oauth2_bearer), db: Session = Depends(get_db)
):
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if is_blacklisted(token):
        raise credentials_exception

    try:
        payload = decode_token(token)
    except JWTError:
        raise credentials_exception

    email: Optional[str] = payload.get("sub")
    user_id: Optional[int] = payload.get("id")
    user_role: Optional[str] = payload.get("role")
    if email is None or user_id is None or user_role is None:
        raise credentials_exception

    user = db.query(User).filter(User.id == user_id).first()
    if user is None or user.email != email:
        raise credentials_exception
    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Account is disabled"
        )
    return {
        "user_id": user_id,
        "email": email,
        "role": user_role,
        "token": token,
    }
