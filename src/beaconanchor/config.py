"""Operator configuration.

Rules:
- Fail closed: anything missing or malformed raises ConfigError at startup,
  before the first cycle runs.
- Credentials are only required by the submission mode that uses them, and are
  kept out of the dataclass repr.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlparse

from eth_utils import is_hex_address

from .domain.errors import ConfigError
from .domain.value_types import Address, SubmitMode

LOG_FORMATS = ("rich", "json")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
SUBMIT_MODES: tuple[SubmitMode, ...] = ("direct", "relay")


@dataclass(frozen=True)
class RelayConfig:
    endpoint: str
    api_key: str = field(repr=False)


@dataclass(frozen=True)
class Settings:
    mode: SubmitMode
    rpc_url: str
    chain_id: int
    contract: Address
    block_interval: int
    loop_interval_seconds: float = 300.0
    rpc_timeout_seconds: float = 20.0
    receipt_timeout_seconds: float = 180.0
    max_lookback: int = 64
    private_key: str | None = field(default=None, repr=False)
    relay: RelayConfig | None = None
    log_level: str = "INFO"
    log_format: str = "rich"

    @property
    def submit_timeout_seconds(self) -> float:
        # broadcast + inclusion wait, with room for the extra RPC round trips
        return self.receipt_timeout_seconds + 4 * self.rpc_timeout_seconds


def _require(name: str, value: Any) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ConfigError(f"Missing required setting: {name}")
    return value.strip() if isinstance(value, str) else value


def _positive_int(name: str, value: Any) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be an integer, got {value!r}") from None
    if n <= 0:
        raise ConfigError(f"{name} must be > 0, got {n}")
    return n


def _positive_float(name: str, value: Any) -> float:
    try:
        x = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}") from None
    if x <= 0:
        raise ConfigError(f"{name} must be > 0, got {x}")
    return x


def _http_url(name: str, value: Any) -> str:
    url = _require(name, value)
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ConfigError(f"{name} must be an http(s) URL, got {url!r}")
    return url


def normalize_address(value: Any) -> Address:
    raw = _require("CONTRACT_ADDRESS", value)
    s = raw.lower()
    if not s.startswith("0x"):
        s = "0x" + s
    if not is_hex_address(s):
        raise ConfigError(f"CONTRACT_ADDRESS must be a 20-byte hex address, got {raw!r}")
    return Address(s)


_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _resolve_mode(mode: str | None, self_relay: Any) -> SubmitMode:
    """
    SUBMIT_MODE wins; SELF_RELAY (true = hand the call to the relayer) is the
    older boolean spelling of the same switch. Both set and disagreeing is an error.
    """
    legacy: SubmitMode | None = None
    if self_relay is not None and str(self_relay).strip() != "":
        flag = str(self_relay).strip().lower()
        if flag in _TRUE:
            legacy = "relay"
        elif flag in _FALSE:
            legacy = "direct"
        else:
            raise ConfigError(f"SELF_RELAY must be true or false, got {self_relay!r}")
    if mode is None or not str(mode).strip():
        return legacy or "direct"
    m = str(mode).strip().lower()
    if m not in SUBMIT_MODES:
        raise ConfigError(f"SUBMIT_MODE must be one of {SUBMIT_MODES}, got {mode!r}")
    if legacy is not None and legacy != m:
        raise ConfigError(f"SUBMIT_MODE={m} conflicts with SELF_RELAY={self_relay}")
    return m  # type: ignore[return-value]


def build_settings(
    *,
    mode: str | None = None,
    self_relay: Any = None,
    rpc_url: str | None = None,
    chain_id: Any = None,
    contract: str | None = None,
    block_interval: Any = None,
    loop_interval_seconds: Any = 300,
    rpc_timeout_seconds: Any = 20,
    receipt_timeout_seconds: Any = 180,
    max_lookback: Any = 64,
    private_key: str | None = None,
    relayer_url: str | None = None,
    relayer_api_key: str | None = None,
    log_level: str = "INFO",
    log_format: str = "rich",
    require_credentials: bool = True,
) -> Settings:
    mode = _resolve_mode(mode, self_relay)
    log_format = (log_format or "").strip().lower()
    if log_format not in LOG_FORMATS:
        raise ConfigError(f"LOG_FORMAT must be one of {LOG_FORMATS}, got {log_format!r}")
    log_level = (log_level or "INFO").strip().upper()
    if log_level not in LOG_LEVELS:
        raise ConfigError(f"LOG_LEVEL must be one of {LOG_LEVELS}, got {log_level!r}")

    rpc_url = _http_url("RPC_URL", rpc_url)
    chain_id = _positive_int("CHAIN_ID", _require("CHAIN_ID", chain_id))
    address = normalize_address(contract)
    block_interval = _positive_int("BLOCK_INTERVAL", _require("BLOCK_INTERVAL", block_interval))

    relay: RelayConfig | None = None
    if not require_credentials:
        private_key = None
    elif mode == "direct":
        private_key = _require("PRIVATE_KEY", private_key)
    else:
        relay = RelayConfig(
            endpoint=_http_url("SECURE_RELAYER_ENDPOINT", relayer_url),
            api_key=_require("SECURE_RELAYER_API_KEY", relayer_api_key),
        )
        private_key = None

    return Settings(
        mode=mode,  # type: ignore[arg-type]
        rpc_url=rpc_url,
        chain_id=chain_id,
        contract=address,
        block_interval=block_interval,
        loop_interval_seconds=_positive_float("LOOP_INTERVAL_SECONDS", loop_interval_seconds),
        rpc_timeout_seconds=_positive_float("RPC_TIMEOUT_SECONDS", rpc_timeout_seconds),
        receipt_timeout_seconds=_positive_float("RECEIPT_TIMEOUT_SECONDS", receipt_timeout_seconds),
        max_lookback=_positive_int("MAX_LOOKBACK_INTERVALS", max_lookback),
        private_key=private_key,
        relay=relay,
        log_level=log_level,
        log_format=log_format,
    )
