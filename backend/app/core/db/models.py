from __future__ import annotations

from sqlalchemy import Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from app.core.db.base import Base, IdMixin, TimestampMixin
from app.shared.enums import Role


class User(Base, IdMixin, TimestampMixin):
    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(200))
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    role: Mapped[Role] = mapped_column(
        Enum(Role, name="user_role_enum", values_callable=lambda e: [m.value for m in e]),
        default=Role.VIEWER,
        nullable=False,
        index=True,
    )

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
