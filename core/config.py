from __future__ import annotations

from functools import lru_cache
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, AliasChoices
from pydantic_settings import BaseSettings


load_dotenv()


class AppSettings(BaseSettings):
    # Pydantic v2 settings configuration

    mongo_uri: str = Field(default="mongodb://localhost:27017", alias="MONGO_URI")
    # Accept MONGO_DB_NAME (preferred) or DATABASE_NAME (legacy)
    database_name: str = Field(
        default="studio-agenda",
        validation_alias=AliasChoices("MONGO_DB_NAME", "DATABASE_NAME"),
    )
    services_collection: str = Field(default="services", alias="SERVICES_COLLECTION")
    appointments_collection: str = Field(
        default="appointments", alias="APPOINTMENTS_COLLECTION"
    )
    slots_collection: str = Field(default="appointment_slots", alias="SLOTS_COLLECTION")

    # Seconds before a store call is abandoned and surfaced as StoreUnavailable
    store_timeout_seconds: float = Field(default=10.0, alias="STORE_TIMEOUT_SECONDS")
    enable_change_stream: bool = Field(default=False, alias="ENABLE_CHANGE_STREAM")

    # Payment reference shown to clients choosing Pix; empty means not configured
    pix_key: str = Field(default="", alias="PIX_KEY")
    business_contact: str = Field(
        default="WhatsApp ou telefone", alias="BUSINESS_CONTACT"
    )

    # Auth / JWT
    jwt_secret_key: str = Field(default="dev-secret", alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=30, alias="ACCESS_TOKEN_EXPIRE_MINUTES"
    )

    allowed_origins: str = Field(default="http://localhost:3000", alias="ALLOWED_ORIGINS")

    environment: Literal["development", "production", "test"] = Field(
        default="development", alias="ENVIRONMENT"
    )


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings()


settings = get_settings()
