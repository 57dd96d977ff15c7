from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MultiBodySettings(BaseSettings):
    """Runtime configuration, read from ``MULTIBODY_*`` environment variables.

    ``default_required`` and ``default_parse_all_fields`` apply to ``MultiBody``
    markers that leave the matching flag unset. They are read when a handler is
    registered, not per request.
    """

    model_config = SettingsConfigDict(env_prefix="MULTIBODY_", frozen=True)

    default_required: bool = True
    default_parse_all_fields: bool = True
    body_encoding: str = "utf-8"
    install_exception_handlers: bool = True
    client_error_status_code: int = Field(default=400, ge=400, le=499)
    validation_failed_status_code: int = Field(default=422, ge=400, le=499)


__all__ = ["MultiBodySettings"]
