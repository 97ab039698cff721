from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.db.session import get_db
from app.core.security.auth import Actor, issue_access_token
from app.core.security.dependencies import get_actor, require_admin
from app.modules.users import service
from app.modules.users.schemas import AuthOut, LoginRequest, RegisterRequest, UserOut
from app.shared.pagination import PageParams, page_params
from app.shared.responses import Envelope, PageEnvelope, ok, paginated

auth_router = APIRouter(prefix="/auth", tags=["auth"])
router = APIRouter(prefix="/users", tags=["users"])


@auth_router.post("/register", response_model=Envelope[AuthOut], status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    user = service.register_user(db, name=payload.name, email=payload.email, password=payload.password)
    out = AuthOut(user=UserOut.model_validate(user), token=issue_access_token(user))
    return ok(out, "User registered successfully")


@auth_router.post("/login", response_model=Envelope[AuthOut])
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = service.authenticate_user(db, email=payload.email, password=payload.password)
    out = AuthOut(user=UserOut.model_validate(user), token=issue_access_token(user))
    return ok(out, "Login successful")


@auth_router.get("/me", response_model=Envelope[UserOut])
def me(db: Session = Depends(get_db), actor: Actor = Depends(get_actor)):
    user = service.get_user(db, user_id=actor.user_id)
    return ok(UserOut.model_validate(user), "User retrieved successfully")


@router.get("", response_model=PageEnvelope[UserOut])
def list_users(
    pages: PageParams = Depends(page_params),
    search: str | None = Query(default=None, max_length=100),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin()),
):
    items, total = service.list_users(db, page=pages.page, limit=pages.limit, search=search)
    return paginated(
        [UserOut.model_validate(u) for u in items],
        page=pages.page,
        limit=pages.limit,
        total=total,
        message="Users retrieved successfully",
    )


@router.get("/{user_id}", response_model=Envelope[UserOut])
def get_user(
    user_id: uuid.UUID,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin()),
):
    user = service.get_user(db, user_id=user_id)
    return ok(UserOut.model_validate(user), "User retrieved successfully")
