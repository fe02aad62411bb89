from __future__ import annotations

import asyncio
import re
import time
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import httpx
from aptos_sdk.account import Account
from aptos_sdk.account_address import AccountAddress
from aptos_sdk.async_client import ApiError, ClientConfig, FaucetClient, RestClient
from aptos_sdk.bcs import Serializer
from aptos_sdk.transactions import (
    EntryFunction,
    ModuleId,
    RawTransaction,
    SignedTransaction,
    TransactionPayload,
)
from aptos_sdk.type_tag import TypeTag
from loguru import logger

from .config import LedgerConfig
from .errors import ConfigError, RpcError

_HEX_ADDRESS = re.compile(r"^(?:0x)?([0-9a-fA-F]{1,64})$")


def parse_address(value: str) -> AccountAddress:
    """Parse a hex account address (short forms are left-padded to 32 bytes)."""
    match = _HEX_ADDRESS.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ConfigError(f"Malformed account address: {value!r}")
    return AccountAddress(bytes.fromhex(match.group(1).rjust(64, "0")))


def serialize_address(address: AccountAddress) -> bytes:
    ser = Serializer()
    address.serialize(ser)
    return ser.output()


def _to_rpc_error(function_name: str, exc: BaseException) -> RpcError:
    """Classify SDK/transport failures into the RpcError kinds."""
    if isinstance(exc, RpcError):
        return exc
    if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)):
        return RpcError(f"{function_name}: request timed out: {exc}", RpcError.TIMEOUT)
    if isinstance(exc, httpx.HTTPError):
        return RpcError(f"{function_name}: node unreachable: {exc}", RpcError.UNREACHABLE)
    if isinstance(exc, ApiError):
        return RpcError(f"{function_name}: rejected by node: {exc}", RpcError.REJECTED)

    error_str = str(exc).lower()
    if "timed out" in error_str or "timeout" in error_str:
        return RpcError(f"{function_name}: timed out waiting: {exc}", RpcError.TIMEOUT)
    elif "connection" in error_str or "network" in error_str:
        return RpcError(f"{function_name}: node unreachable: {exc}", RpcError.UNREACHABLE)
    return RpcError(f"{function_name}: transaction failed: {exc}", RpcError.REJECTED)


@dataclass(slots=True, frozen=True)
class Receipt:
    function_name: str
    txn_hash: str
    sequence_number: int
    version: Optional[int] = None
    gas_used: Optional[int] = None
    vm_status: Optional[str] = None

    @classmethod
    def from_json(
        cls, function_name: str, sequence_number: int, payload: dict[str, Any]
    ) -> "Receipt":
        def _int(key: str) -> Optional[int]:
            raw = payload.get(key)
            return int(raw) if raw is not None else None

        return cls(
            function_name=function_name,
            txn_hash=str(payload.get("hash", "")),
            sequence_number=sequence_number,
            version=_int("version"),
            gas_used=_int("gas_used"),
            vm_status=payload.get("vm_status"),
        )


class LedgerTransactionClient:
    """
    Signs and submits entry-function calls to the game contract.

    One instance owns one signing identity and its sequence number. Calls are
    fire-and-wait: nothing is batched and nothing is retried here.
    """

    def __init__(
        self,
        config: Optional[LedgerConfig] = None,
        account: Optional[Account] = None,
        rest_client: Optional[RestClient] = None,
        faucet_client: Optional[FaucetClient] = None,
    ):
        self.config = config or LedgerConfig.from_env()
        self.config.validate()
        self.account = account or self._load_account()
        self.module_id = ModuleId(
            parse_address(self.config.contract_address), self.config.module_name
        )

        client_config = ClientConfig(
            expiration_ttl=self.config.expiration_secs,
            gas_unit_price=self.config.gas_unit_price,
            max_gas_amount=self.config.max_gas_amount,
            transaction_wait_in_seconds=self.config.transaction_wait_secs,
        )
        self.rest_client = rest_client or RestClient(self.config.node_url, client_config)
        self.faucet_client = faucet_client or FaucetClient(
            self.config.faucet_url, self.rest_client
        )

        self._address = self.account.address()
        self._sequence_number: Optional[int] = None
        self._chain_id: Optional[int] = self.config.chain_id
        self._funded = False

    def _load_account(self) -> Account:
        if not self.config.private_key:
            return Account.generate()
        try:
            return Account.load_key(self.config.private_key)
        except Exception as e:
            raise ConfigError(f"LEDGER_PRIVATE_KEY is not a valid key: {e}") from e

    # --- Identity ---
    def address(self) -> AccountAddress:
        return self._address

    @property
    def sequence_number(self) -> Optional[int]:
        """Locally tracked sequence number, None until fetched or after a failure."""
        return self._sequence_number

    # --- Ledger metadata ---
    async def chain_id(self) -> int:
        if self._chain_id is None:
            try:
                info = await self.rest_client.info()
            except Exception as e:
                raise _to_rpc_error("info", e) from e
            self._chain_id = int(info["chain_id"])
        return self._chain_id

    async def ledger_version(self) -> int:
        try:
            info = await self.rest_client.info()
        except Exception as e:
            raise _to_rpc_error("info", e) from e
        return int(info["ledger_version"])

    async def resync(self) -> int:
        """Refetch the account sequence number from the node."""
        try:
            self._sequence_number = await self.rest_client.account_sequence_number(
                self._address
            )
        except Exception as e:
            self._sequence_number = None
            raise _to_rpc_error("account_sequence_number", e) from e
        logger.debug(f"Sequence number for {self._address} is {self._sequence_number}")
        return self._sequence_number

    def invalidate_sequence_number(self) -> None:
        self._sequence_number = None

    # --- Faucet ---
    async def fund(self, amount: Optional[int] = None) -> None:
        amount = self.config.fund_amount if amount is None else amount
        try:
            await self.faucet_client.fund_account(self._address, amount)
        except Exception as e:
            raise _to_rpc_error("fund_account", e) from e
        self._funded = True
        logger.info(f"Funded {self._address} with {amount}")

    async def ensure_funded(self) -> None:
        if self._funded or self.config.fund_amount <= 0:
            return
        await self.fund()

    # --- Transactions ---
    async def invoke(
        self,
        function_name: str,
        type_arguments: Sequence[TypeTag] = (),
        arguments: Sequence[bytes] = (),
    ) -> Receipt:
        """Build, sign, submit and wait for one entry-function transaction.

        Raises:
            RpcError: node unreachable, transaction rejected or timed out. The
                cached sequence number is dropped so the next call refetches it.
        """
        try:
            if self._sequence_number is None:
                await self.resync()
            sequence_number = self._sequence_number
            signed = await self._build_signed(
                function_name, list(type_arguments), list(arguments), sequence_number
            )
            txn_hash = await self.rest_client.submit_bcs_transaction(signed)
            logger.debug(f"Submitted {function_name} #{sequence_number}: {txn_hash}")
            # Bounded here as well as by the SDK's assert-based wait limit.
            await asyncio.wait_for(
                self.rest_client.wait_for_transaction(txn_hash),
                timeout=self.config.transaction_wait_secs + 1,
            )
            payload = await self.rest_client.transaction_by_hash(txn_hash)
            if not payload.get("success"):
                raise RpcError(
                    f"{function_name}: execution failed: {payload.get('vm_status')}",
                    RpcError.REJECTED,
                )
            receipt = Receipt.from_json(function_name, sequence_number, payload)
        except Exception as e:
            self.invalidate_sequence_number()
            error = _to_rpc_error(function_name, e)
            logger.error(f"{function_name} failed ({error.kind}): {error}")
            raise error from e

        self._sequence_number = sequence_number + 1
        logger.info(f"{function_name} committed at version {receipt.version}")
        return receipt

    async def _build_signed(
        self,
        function_name: str,
        type_arguments: list[TypeTag],
        arguments: list[bytes],
        sequence_number: int,
    ) -> SignedTransaction:
        payload = TransactionPayload(
            EntryFunction(self.module_id, function_name, type_arguments, arguments)
        )
        raw = RawTransaction(
            self._address,
            sequence_number,
            payload,
            self.config.max_gas_amount,
            self.config.gas_unit_price,
            int(time.time()) + self.config.expiration_secs,
            await self.chain_id(),
        )
        return SignedTransaction(raw, self.account.sign_transaction(raw))

    # --- Game entry functions ---
    async def create_game(self) -> Receipt:
        return await self.invoke("create_game")

    async def join_game(self, match_address: AccountAddress) -> Receipt:
        return await self.invoke("join_game", arguments=[serialize_address(match_address)])

    async def roll_the_dice(self) -> Receipt:
        return await self.invoke("roll_the_dice")

    async def close(self) -> None:
        await self.rest_client.close()
