import os
from dataclasses import dataclass, field
from typing import Optional

import httpx
from dotenv import load_dotenv

from .errors import ConfigError

load_dotenv()


@dataclass(slots=True)
class BoardConfig:
    # --- Constants ---
    TOWERS_COUNT: int = 24
    RUN_LENGTH: int = 6  # four runs of six make up the ring
    PIECES_PER_PLAYER: int = 15
    MAX_PIECES_PER_TOWER: int = 15

    # Starting layout in each player's local frame (1-indexed tower ids)
    START_TOWERS: list[int] = field(default_factory=lambda: [1, 12, 17, 19])
    START_PIECES: list[int] = field(default_factory=lambda: [2, 5, 3, 5])

    # Viz Variables
    BAR_WIDTH: float = 100.0
    POINT_SPACING: float = 75.0
    PIECE_SPACING: float = 65.0
    BOARD_HEIGHT: float = 720.0
    TOP_MARGIN: float = 85.0
    BOTTOM_OFFSET: float = 10.0

    def __post_init__(self):
        if len(self.START_TOWERS) != len(self.START_PIECES):
            raise ValueError("START_TOWERS and START_PIECES must have the same length")
        if sum(self.START_PIECES) != self.PIECES_PER_PLAYER:
            raise ValueError("Starting layout must place every piece of a player")


def _env(*names: str, default: str) -> str:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return default


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def _check_url(name: str, value: str) -> str:
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL as e:
        raise ConfigError(f"{name} is not a valid URL: {value!r}") from e
    if url.scheme not in ("http", "https") or not url.host:
        raise ConfigError(f"{name} must be an http(s) URL with a host, got {value!r}")
    return value.rstrip("/")


@dataclass
class LedgerConfig:
    """Endpoints, contract identity and gas policy for ledger transactions."""

    node_url: str = "http://127.0.0.1:8080/v1"
    faucet_url: str = "http://127.0.0.1:8081"
    contract_address: str = (
        "0x35bcaf14a08f75b726ff25dbad2063286a4b3ff191753b0f1d57913b2038a687"
    )
    module_name: str = "backgammon"
    max_gas_amount: int = 5_000
    gas_unit_price: int = 100
    expiration_secs: int = 10  # ledger-side timeout window
    chain_id: Optional[int] = None  # None = ask the node
    fund_amount: int = 100_000_000  # 0 disables faucet funding
    transaction_wait_secs: int = 20
    private_key: str = field(default="", repr=False)

    @property
    def module_id(self) -> str:
        return f"{self.contract_address}::{self.module_name}"

    @classmethod
    def from_env(cls) -> "LedgerConfig":
        """Create config from environment variables with proper type conversion."""
        chain_id = os.getenv("LEDGER_CHAIN_ID", "")
        cfg = cls(
            node_url=_check_url(
                "LEDGER_NODE_URL",
                _env("LEDGER_NODE_URL", "APTOS_NODE_URL", default=cls.node_url),
            ),
            faucet_url=_check_url(
                "LEDGER_FAUCET_URL",
                _env("LEDGER_FAUCET_URL", "APTOS_FAUCET_URL", default=cls.faucet_url),
            ),
            contract_address=os.getenv("LEDGER_CONTRACT_ADDRESS", cls.contract_address),
            module_name=os.getenv("LEDGER_MODULE", cls.module_name),
            max_gas_amount=_int_env("LEDGER_MAX_GAS", cls.max_gas_amount),
            gas_unit_price=_int_env("LEDGER_GAS_PRICE", cls.gas_unit_price),
            expiration_secs=_int_env("LEDGER_EXPIRATION_SECS", cls.expiration_secs),
            chain_id=_int_env("LEDGER_CHAIN_ID", 0) if chain_id else None,
            fund_amount=_int_env("LEDGER_FUND_AMOUNT", cls.fund_amount),
            transaction_wait_secs=_int_env(
                "LEDGER_WAIT_SECS", cls.transaction_wait_secs
            ),
            private_key=os.getenv("LEDGER_PRIVATE_KEY", ""),
        )
        cfg.validate()
        return cfg

    def validate(self) -> None:
        _check_url("node_url", self.node_url)
        _check_url("faucet_url", self.faucet_url)
        if self.max_gas_amount <= 0 or self.gas_unit_price <= 0:
            raise ConfigError("Gas amount and price must be positive")
        if self.expiration_secs <= 0:
            raise ConfigError("Expiration window must be positive")
        if self.fund_amount < 0:
            raise ConfigError("Fund amount cannot be negative")
        if not self.module_name.isidentifier():
            raise ConfigError(f"Invalid module name: {self.module_name!r}")


board_config = BoardConfig()
