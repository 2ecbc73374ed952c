from __future__ import annotations

from apiload.config.models import CredentialMode, HttpMethod, RunConfig, TransportConfig
from apiload.config.settings import Settings, load_settings

__all__ = [
    "CredentialMode",
    "HttpMethod",
    "RunConfig",
    "Settings",
    "TransportConfig",
    "load_settings",
]
