from __future__ import annotations

from enum import Enum


class Env(str, Enum):
    dev = "dev"
    prod = "prod"
    test = "test"


class Role(str, Enum):
    ADMIN = "admin"
    VIEWER = "viewer"
