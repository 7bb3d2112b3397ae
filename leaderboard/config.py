"""Endpoint, timeouts, retry and qualification settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields


@dataclass
class ClientConfig:
    # Endpoint
    endpoint_url: str = ""
    # Per attempt, for each of the two transport mechanisms.
    request_timeout_sec: float = 10.0
    direct_fallback: bool = True

    # Retry
    max_retries: int = 3
    backoff_base_sec: float = 1.0

    # Ranking rules
    qualify_top_n: int = 5
    name_max_length: int = 10
    date_format: str = "{year}/{month}/{day}"

    # Diagnostics
    debug: bool = False
    log_file: str | None = None

    def backoff_delays(self) -> list[float]:
        return [self.backoff_base_sec * (2 ** n) for n in range(self.max_retries)]

    def max_wait_sec(self) -> float:
        """Upper bound on one logical operation, used to cap single-flight waits."""
        per_attempt = self.request_timeout_sec * (2.0 if self.direct_fallback else 1.0)
        return per_attempt * (self.max_retries + 1) + sum(self.backoff_delays())

    def update(self, **changes) -> None:
        known = {f.name for f in fields(self)}
        for k, v in changes.items():
            if k not in known:
                raise TypeError(f"unknown config field: {k}")
            # None and "" mean "not given"; False and 0 are real values.
            if v is None or v == "":
                continue
            setattr(self, k, v)

    @staticmethod
    def _parse_bool(v: str | None, default: bool) -> bool:
        if v is None:
            return default
        return v.strip().lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _parse_num(v: str | None, default, cast):
        if v is None or not v.strip():
            return default
        try:
            return cast(v)
        except ValueError:
            return default

    @classmethod
    def from_env(cls, environ=None) -> "ClientConfig":
        env = os.environ if environ is None else environ
        cfg = cls()
        cfg.endpoint_url = env.get("LB_ENDPOINT_URL", cfg.endpoint_url).strip()
        cfg.request_timeout_sec = cls._parse_num(env.get("LB_REQUEST_TIMEOUT"), cfg.request_timeout_sec, float)
        cfg.max_retries = cls._parse_num(env.get("LB_MAX_RETRIES"), cfg.max_retries, int)
        cfg.backoff_base_sec = cls._parse_num(env.get("LB_BACKOFF_BASE"), cfg.backoff_base_sec, float)
        cfg.qualify_top_n = cls._parse_num(env.get("LB_QUALIFY_TOP_N"), cfg.qualify_top_n, int)
        cfg.name_max_length = cls._parse_num(env.get("LB_NAME_MAX_LENGTH"), cfg.name_max_length, int)
        date_format = env.get("LB_DATE_FORMAT")
        if date_format:
            cfg.date_format = date_format
        cfg.direct_fallback = cls._parse_bool(env.get("LB_DIRECT_FALLBACK"), cfg.direct_fallback)
        cfg.debug = cls._parse_bool(env.get("LB_DEBUG"), cfg.debug)
        log_file = env.get("LB_LOG_FILE")
        if log_file:
            cfg.log_file = log_file
        return cfg
