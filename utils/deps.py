from core.database import SessionLocal
from typing import Annotated
from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from jose import JWTError, jwt
from starlette import status
from core.config import settings
from core.context import RequestContext
from models.enums import UserRole


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

db_dependency = Annotated[Session, Depends(get_db)]


# Token issuing lives in the auth service; this only reads the claims.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/token")


def get_request_context(token: Annotated[str, Depends(oauth2_scheme)]) -> RequestContext:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        user_id = payload.get("id")
        role = payload.get("role")
        token_type = payload.get("type")

        if user_id is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                                detail="Could not validate credentials.")

        if token_type != "access":
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                                detail="Invalid token type. Access token required.")

        try:
            user_role = UserRole(str(role or UserRole.CUSTOMER.value).upper())
        except ValueError:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                                detail="Could not validate credentials.")

        return RequestContext(user_id=int(user_id), role=user_role)

    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                            detail="Could not validate credentials.")


context_dependency = Annotated[RequestContext, Depends(get_request_context)]


def require_admin(ctx: context_dependency) -> RequestContext:
    if not ctx.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN,
                            detail="Admin privileges required.")
    return ctx


admin_dependency = Annotated[RequestContext, Depends(require_admin)]
