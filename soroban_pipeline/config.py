"""
Pipeline configuration: RPC endpoint, network passphrase, fees and poll bounds.

- Loads sane defaults and supports overrides via environment variables (SOROBAN_*).
- Provides helpers for building HTTP headers and validating endpoints.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .version import user_agent as _default_user_agent

_DEFAULT_RPC = "http://localhost:8000/soroban/rpc"
TESTNET_PASSPHRASE = "Test SDF Network ; September 2015"

DEFAULT_BASE_FEE = 100
DEFAULT_AUTH_HORIZON = 60
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_POLL_ATTEMPTS = 30


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    return v if v is not None else default


def _ensure_scheme(url: Optional[str], allowed: tuple[str, ...]) -> Optional[str]:
    if not url:
        return url
    lower = url.lower()
    if not any(lower.startswith(f"{sch}://") for sch in allowed):
        raise ValueError(f"URL must start with {allowed}, got: {url!r}")
    return url


def _ensure_positive(name: str, value: float, *, allow_zero: bool = False) -> None:
    if value < 0 or (value == 0 and not allow_zero):
        raise ValueError(f"{name} must be {'>= 0' if allow_zero else '> 0'}, got {value!r}")


@dataclass(slots=True)
class PipelineConfig:
    # Node
    rpc_url: str = field(default_factory=lambda: _DEFAULT_RPC)
    network_passphrase: str = TESTNET_PASSPHRASE
    # Assembly / authorization
    base_fee: int = DEFAULT_BASE_FEE
    auth_horizon: int = DEFAULT_AUTH_HORIZON
    # Polling
    poll_interval: float = DEFAULT_POLL_INTERVAL
    poll_attempts: int = DEFAULT_POLL_ATTEMPTS
    # HTTP behavior
    request_timeout: float = 30.0
    max_retries: int = 0
    backoff_factor: float = 0.25
    log_level: str = "WARNING"
    user_agent: str = field(default_factory=_default_user_agent)

    def __post_init__(self) -> None:
        _ensure_scheme(self.rpc_url, ("http", "https"))
        _ensure_positive("base_fee", self.base_fee)
        _ensure_positive("auth_horizon", self.auth_horizon)
        _ensure_positive("poll_interval", self.poll_interval, allow_zero=True)
        _ensure_positive("poll_attempts", self.poll_attempts)
        _ensure_positive("request_timeout", self.request_timeout)
        _ensure_positive("max_retries", self.max_retries, allow_zero=True)
        if not self.network_passphrase:
            raise ValueError("network_passphrase must not be empty")

    @classmethod
    def from_env(cls, prefix: str = "SOROBAN_") -> "PipelineConfig":
        """
        Create config from environment variables:

        SOROBAN_RPC_URL             (http/https)
        SOROBAN_NETWORK_PASSPHRASE  (str)
        SOROBAN_FEE                 (int, stroops; inclusion fee floor)
        SOROBAN_AUTH_HORIZON        (int, ledgers)
        SOROBAN_POLL_INTERVAL       (float seconds)
        SOROBAN_POLL_ATTEMPTS       (int)
        SOROBAN_TIMEOUT             (float seconds, HTTP)
        SOROBAN_MAX_RETRIES         (int)
        SOROBAN_BACKOFF             (float)
        SOROBAN_LOG_LEVEL           (str)
        SOROBAN_USER_AGENT          (str)
        """
        return cls(
            rpc_url=_env(f"{prefix}RPC_URL", _DEFAULT_RPC) or _DEFAULT_RPC,
            network_passphrase=_env(f"{prefix}NETWORK_PASSPHRASE", TESTNET_PASSPHRASE) or TESTNET_PASSPHRASE,
            base_fee=int(_env(f"{prefix}FEE", str(DEFAULT_BASE_FEE))),
            auth_horizon=int(_env(f"{prefix}AUTH_HORIZON", str(DEFAULT_AUTH_HORIZON))),
            poll_interval=float(_env(f"{prefix}POLL_INTERVAL", str(DEFAULT_POLL_INTERVAL))),
            poll_attempts=int(_env(f"{prefix}POLL_ATTEMPTS", str(DEFAULT_POLL_ATTEMPTS))),
            request_timeout=float(_env(f"{prefix}TIMEOUT", "30.0")),
            max_retries=int(_env(f"{prefix}MAX_RETRIES", "0")),
            backoff_factor=float(_env(f"{prefix}BACKOFF", "0.25")),
            log_level=(_env(f"{prefix}LOG_LEVEL", "WARNING") or "WARNING").upper(),
            user_agent=_env(f"{prefix}USER_AGENT", None) or _default_user_agent(),
        )

    @classmethod
    def with_overrides(
        cls, base: Optional["PipelineConfig"] = None, **overrides: Any
    ) -> "PipelineConfig":
        """
        Build from an existing config plus keyword overrides.
        Unknown keys and `None` values are ignored.
        """
        base = base or cls.from_env()
        data = base.to_dict()
        data.update({k: v for k, v in overrides.items() if k in data and v is not None})
        return cls(**data)

    def http_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rpc_url": self.rpc_url,
            "network_passphrase": self.network_passphrase,
            "base_fee": int(self.base_fee),
            "auth_horizon": int(self.auth_horizon),
            "poll_interval": float(self.poll_interval),
            "poll_attempts": int(self.poll_attempts),
            "request_timeout": float(self.request_timeout),
            "max_retries": int(self.max_retries),
            "backoff_factor": float(self.backoff_factor),
            "log_level": self.log_level,
            "user_agent": self.user_agent,
        }


__all__ = [
    "PipelineConfig",
    "TESTNET_PASSPHRASE",
    "DEFAULT_BASE_FEE",
    "DEFAULT_AUTH_HORIZON",
    "DEFAULT_POLL_INTERVAL",
    "DEFAULT_POLL_ATTEMPTS",
]
