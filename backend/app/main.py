from __future__ import annotations

from fastapi import APIRouter, Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.db.session import get_db
from app.core.logging import configure_logging
from app.core.middleware.audit import set_actor
from app.core.middleware.errors import register_error_handlers
from app.core.middleware.request_id import RequestIdMiddleware
from app.domain.portfolio.routes.assets import router as assets_router
from app.domain.portfolio.routes.investments import router as investments_router
from app.modules.users import service as users_service
from app.modules.users.routes import auth_router, router as users_router
from app.shared.enums import Env, Role
from app.shared.exceptions import NotFound


class DevSeedRequest(BaseModel):
    name: str = Field(default=settings.dev_admin_name, min_length=2, max_length=100)
    email: EmailStr = Field(default=settings.dev_admin_email)
    password: str = Field(default=settings.dev_admin_password, min_length=1)


def create_app() -> FastAPI:
    configure_logging()

    app = FastAPI(title="Altfolio - Backend", version="0.1.0")
    app.add_middleware(RequestIdMiddleware)
    if settings.allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.allowed_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    register_error_handlers(app)

    @app.get("/health", tags=["admin"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    # Static hosting proxies the backend under /api/*.
    app.add_api_route("/api/health", health, methods=["GET"], tags=["admin"])

    @app.post("/admin/dev/seed", tags=["admin"])
    def dev_seed(payload: DevSeedRequest | None = None, db: Session = Depends(get_db)) -> dict:
        if settings.env != Env.dev:
            raise NotFound()
        payload = payload or DevSeedRequest()

        # bootstrap actor (no auth required for first seed in dev)
        set_actor("dev-seed", Role.ADMIN.value)
        user = users_service.ensure_admin(db, name=payload.name, email=payload.email, password=payload.password)

        return {
            "user_id": str(user.id),
            "email": user.email,
            "dev_actor_header_name": settings.dev_actor_header,
            "dev_actor_header_value": {"actor_id": str(user.id), "role": Role.ADMIN.value},
            "note": "Send this payload as JSON in the dev actor header (ENV=dev only).",
        }

    api_router = APIRouter(prefix="/api/v1")
    api_router.include_router(auth_router)
    api_router.include_router(users_router)
    api_router.include_router(assets_router)
    api_router.include_router(investments_router)
    app.include_router(api_router)

    return app


app = create_app()
