from __future__ import annotations

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from modules.exchange_reconciliation.core.money import to_minor_units

DEFAULT_DENOMINATIONS = "1000,500,200,100,50,20,10,5,2,1"


class ExchangeSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="EXCHANGE_",
        env_file=".env",
        extra="ignore",
    )

    currency_decimals: int = Field(2, ge=0, le=4)
    currency_symbol: str = "৳"
    # major-unit face values, largest first
    denominations: str = DEFAULT_DENOMINATIONS
    order_service_url: str = "http://localhost:8000/api"
    request_timeout: float = Field(15.0, gt=0)

    @field_validator("order_service_url")
    @classmethod
    def _v_url(cls, v: str) -> str:
        return v.strip().rstrip("/")

    @field_validator("denominations")
    @classmethod
    def _v_denoms(cls, v: str) -> str:
        tokens = [token.strip() for token in str(v).split(",") if token.strip()]
        if not tokens:
            raise ValueError("at least one denomination is required")
        return ",".join(tokens)

    def denomination_faces(self) -> List[int]:
        """Configured denominations as minor-unit face values, largest first."""
        faces: List[int] = []
        for token in self.denominations.split(","):
            face, error = to_minor_units(token, self.currency_decimals, label="Denomination")
            if error or face is None or face <= 0:
                raise ValueError(error or f"Invalid denomination '{token}'.")
            faces.append(face)
        return sorted(set(faces), reverse=True)


@lru_cache
def get_settings() -> ExchangeSettings:
    return ExchangeSettings()


__all__ = ["ExchangeSettings", "get_settings", "DEFAULT_DENOMINATIONS"]
