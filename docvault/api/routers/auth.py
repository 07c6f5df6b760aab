from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from docvault.api import deps
from docvault.db.session import get_db
from docvault.schemas import auth as auth_schema
from docvault.schemas import user as user_schema
from docvault.services import auth_service, user_service
from docvault.services.token_service import Identity, TokenService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register", response_model=auth_schema.AuthResponse, status_code=status.HTTP_201_CREATED
)
def register(
    payload: auth_schema.RegisterRequest,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(deps.get_token_service),
):
    return auth_service.register(db, tokens, payload)


@router.post("/login", response_model=auth_schema.AuthResponse)
def login(
    payload: auth_schema.LoginRequest,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(deps.get_token_service),
):
    return auth_service.login(db, tokens, payload)


@router.get("/me", response_model=user_schema.UserRead)
def read_me(
    identity: Identity = Depends(deps.require_identity),
    db: Session = Depends(get_db),
):
    return user_service.get_user(db, identity.user_id)


@router.patch("/me", response_model=user_schema.UserRead)
def update_me(
    payload: user_schema.UserUpdate,
    identity: Identity = Depends(deps.require_identity),
    db: Session = Depends(get_db),
):
    return user_service.update_name(db, identity.user_id, payload.name)
