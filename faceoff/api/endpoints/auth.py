from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from faceoff.api.dependencies import get_db
from faceoff.core import security
from faceoff.models import AdminUser
from faceoff.schemas import auth_schemas
from faceoff.services import auth_service

router = APIRouter()


@router.post("/login", response_model=auth_schemas.Token)
async def login(request: auth_schemas.LoginRequest, db: Session = Depends(get_db)):
    admin = auth_service.authenticate_admin(db, request.username, request.password)
    if not admin:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token_expires = timedelta(minutes=security.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = security.create_access_token(data={"sub": admin.username}, expires_delta=access_token_expires)
    return {"access_token": access_token, "token_type": "bearer"}


@router.get("/me", response_model=auth_schemas.AdminRead)
async def read_current_admin(current_admin: AdminUser = Depends(auth_service.get_current_admin)):
    return current_admin
