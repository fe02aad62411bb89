from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, List, Optional, Union

import numpy as np
from aptos_sdk.account_address import AccountAddress
from loguru import logger

from .board import Board, initialize
from .bridge import AsyncTaskBridge, TaskPoll
from .errors import ConfigError, StateError
from .ledger import Receipt, parse_address
from .types import (
    CreateMatch,
    Intent,
    JoinMatch,
    Player,
    SessionEvent,
    SessionEventKind,
    SessionPhase,
    SessionState,
)

if TYPE_CHECKING:
    from .ledger import LedgerTransactionClient


class SessionController:
    """Drives match creation and joining from a tick-driven host loop.

    All state changes happen inside :meth:`tick` / :meth:`poll` on the caller's
    thread. The background operation only produces a receipt or an error.
    """

    def __init__(
        self,
        client: "LedgerTransactionClient",
        bridge: Optional[AsyncTaskBridge] = None,
        board: Optional[Board] = None,
    ) -> None:
        self.client = client
        self._owns_bridge = bridge is None
        self.bridge = bridge or AsyncTaskBridge()
        self.board = board or initialize()
        self._state = SessionState()
        self._match_address: Optional[AccountAddress] = None
        self._player: Optional[Player] = None
        self._receipt: Optional[Receipt] = None
        self._events: List[SessionEvent] = []

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def phase(self) -> SessionPhase:
        return self._state.phase

    @property
    def match_address(self) -> Optional[AccountAddress]:
        return self._match_address

    @property
    def player(self) -> Optional[Player]:
        """HOST after a create request, GUEST after a join request."""
        return self._player

    @property
    def receipt(self) -> Optional[Receipt]:
        return self._receipt

    def require_match_address(self) -> AccountAddress:
        if self.phase not in (SessionPhase.CREATED, SessionPhase.STARTED):
            raise StateError(f"No confirmed match in phase {self._state}")
        return self._match_address

    def local_view(self) -> np.ndarray:
        return self.board.build_array(self._player or Player.HOST)

    # ------------------------------------------------------------------
    # Intents
    # ------------------------------------------------------------------
    def request_create(self) -> bool:
        """Start creating a match. Returns False (no-op) outside IDLE."""
        if not self._can_start("create"):
            return False
        if not self.bridge.start(self._create_operation, label="create_game"):
            return False
        # The creator's own account designates the match.
        self._match_address = self.client.address()
        self._player = Player.HOST
        self._set_state(SessionState(SessionPhase.CREATING))
        return True

    def request_join(self, address: Union[str, AccountAddress]) -> bool:
        """Start joining the match at ``address``. Returns False (no-op) outside IDLE.

        Raises:
            ConfigError: ``address`` is malformed; no transaction is attempted.
        """
        if not self._can_start("join"):
            return False
        remote = address if isinstance(address, AccountAddress) else parse_address(address)
        if not self.bridge.start(lambda: self._join_operation(remote), label="join_game"):
            return False
        self._match_address = remote
        self._player = Player.GUEST
        self._set_state(SessionState(SessionPhase.JOINING))
        return True

    # ------------------------------------------------------------------
    # Host loop entry points
    # ------------------------------------------------------------------
    def tick(self, intents: Iterable[Intent] = ()) -> List[SessionEvent]:
        """Apply this tick's intents, poll the in-flight operation, return events."""
        for intent in intents:
            try:
                if isinstance(intent, CreateMatch):
                    accepted = self.request_create()
                elif isinstance(intent, JoinMatch):
                    accepted = self.request_join(intent.address)
                else:
                    self._reject(f"Unknown intent {intent!r}")
                    continue
            except ConfigError as e:
                logger.warning(f"Rejected {type(intent).__name__}: {e}")
                self._reject(str(e))
                continue
            if not accepted:
                self._reject(f"{type(intent).__name__} ignored in phase {self._state}")

        self.poll()
        events, self._events = self._events, []
        return events

    def poll(self) -> TaskPoll:
        result = self.bridge.poll()
        if not result.finished:
            return result

        phase = self._state.phase
        if not phase.is_pending:
            logger.warning(f"Dropping operation result that arrived in phase {self._state}")
            return result

        if result.ok:
            self._receipt = result.value
            next_phase = (
                SessionPhase.CREATED
                if phase is SessionPhase.CREATING
                else SessionPhase.STARTED
            )
            self._set_state(SessionState(next_phase))
        else:
            reason = str(result.error) or type(result.error).__name__
            logger.error(f"{phase.name.capitalize()} failed: {reason}")
            self._set_state(SessionState.failed(reason))
        return result

    def reset(self) -> bool:
        """Tear the session down and return to IDLE (re-arm after a failure)."""
        if self.bridge.busy:
            logger.warning("Cannot reset while a ledger operation is in flight")
            return False
        if self._state.phase is SessionPhase.FAILED:
            # The failed transaction may or may not have consumed a sequence number.
            self.client.invalidate_sequence_number()
        self._match_address = None
        self._player = None
        self._receipt = None
        self.board = initialize()
        self._set_state(SessionState())
        return True

    def close(self) -> None:
        if self.bridge.runner.running and not self.bridge.busy:
            try:
                self.bridge.runner.run(self.client.close(), timeout=5.0)
            except Exception as e:
                logger.warning(f"Failed to close ledger client cleanly: {e}")
        if self._owns_bridge:
            self.bridge.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    async def _create_operation(self) -> Receipt:
        await self.client.ensure_funded()
        return await self.client.create_game()

    async def _join_operation(self, remote: AccountAddress) -> Receipt:
        await self.client.ensure_funded()
        return await self.client.join_game(remote)

    def _can_start(self, action: str) -> bool:
        if self._state.phase is not SessionPhase.IDLE:
            logger.warning(f"Ignoring {action} request in phase {self._state}")
            return False
        if self.bridge.busy:
            logger.warning(f"Ignoring {action} request: an operation is in flight")
            return False
        return True

    def _set_state(self, state: SessionState) -> None:
        previous, self._state = self._state, state
        if previous != state:
            logger.info(f"Session {previous} -> {state}")
            self._events.append(
                SessionEvent(SessionEventKind.PHASE_CHANGED, state, previous=previous)
            )

    def _reject(self, detail: str) -> None:
        self._events.append(
            SessionEvent(SessionEventKind.REJECTED, self._state, detail=detail)
        )
