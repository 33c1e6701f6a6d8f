from fastapi import APIRouter, Depends, HTTPException, status
from typing import Optional
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from pydantic import BaseModel

from app.core.errors import Unauthorized
from app.services.auth import AdminAuthService, AdminIdentity

router = APIRouter()

oauth2_scheme_optional = OAuth2PasswordBearer(tokenUrl="api/v1/auth/token", auto_error=False)


class Token(BaseModel):
    access_token: str
    token_type: str

def get_auth_service() -> AdminAuthService:
    return AdminAuthService()

@router.post("/token", response_model=Token)
def login_for_access_token(
    form_data: OAuth2PasswordRequestForm = Depends(),
    service: AdminAuthService = Depends(get_auth_service)
):
    identity = service.authenticate(form_data.username, form_data.password)
    if not identity:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return {"access_token": service.create_access_token(identity), "token_type": "bearer"}

def get_current_admin_optional(
    token: Optional[str] = Depends(oauth2_scheme_optional),
    service: AdminAuthService = Depends(get_auth_service)
) -> Optional[AdminIdentity]:
    return service.current_admin_identity(token)

def get_current_admin(
    identity: Optional[AdminIdentity] = Depends(get_current_admin_optional)
) -> AdminIdentity:
    if identity is None:
        raise Unauthorized()
    return identity

@router.get("/me", response_model=AdminIdentity)
def read_current_admin(admin: AdminIdentity = Depends(get_current_admin)):
    """Get current admin profile"""
    return admin
