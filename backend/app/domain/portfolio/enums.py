from __future__ import annotations

from enum import Enum


class AssetType(str, Enum):
    STARTUP = "Startup"
    CRYPTO_FUND = "Crypto Fund"
    FARMLAND = "Farmland"
    COLLECTIBLE = "Collectible"
    OTHER = "Other"
