"""Environment-backed defaults for the command-line caller."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

URL_ENV = "APILOAD_URL"
KEY_ENV = "APILOAD_KEY"
TIMEOUT_ENV = "APILOAD_TIMEOUT_SEC"


@dataclass(frozen=True, slots=True)
class Settings:
    url: str | None = None
    credential: str | None = None
    timeout_sec: float = 30.0


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ
    url = env.get(URL_ENV, "").strip() or None
    credential = env.get(KEY_ENV) or None
    raw_timeout = env.get(TIMEOUT_ENV, "").strip()
    if not raw_timeout:
        return Settings(url=url, credential=credential)
    try:
        timeout = float(raw_timeout)
    except ValueError:
        msg = f"{TIMEOUT_ENV} must be a number, got {raw_timeout!r}"
        raise ValueError(msg) from None
    if timeout <= 0:
        msg = f"{TIMEOUT_ENV} must be positive, got {raw_timeout!r}"
        raise ValueError(msg)
    return Settings(url=url, credential=credential, timeout_sec=timeout)
