from .board import (
    Board,
    canonical_to_local,
    initialize,
    local_to_canonical,
    position_for,
    run_layout,
)
from .bridge import AsyncTaskBridge, EventLoopThread, TaskPoll, TaskStatus
from .config import BoardConfig, LedgerConfig, board_config
from .errors import BackgammonError, ConfigError, RpcError, StateError
from .ledger import LedgerTransactionClient, Receipt, parse_address
from .session import SessionController
from .types import (
    Bar,
    CreateMatch,
    JoinMatch,
    Player,
    Position,
    RunLayout,
    SessionEvent,
    SessionEventKind,
    SessionPhase,
    SessionState,
)

__all__ = [
    "AsyncTaskBridge",
    "BackgammonError",
    "Bar",
    "Board",
    "BoardConfig",
    "ConfigError",
    "CreateMatch",
    "EventLoopThread",
    "JoinMatch",
    "LedgerConfig",
    "LedgerTransactionClient",
    "Player",
    "Position",
    "Receipt",
    "RpcError",
    "RunLayout",
    "SessionController",
    "SessionEvent",
    "SessionEventKind",
    "SessionPhase",
    "SessionState",
    "StateError",
    "TaskPoll",
    "TaskStatus",
    "board_config",
    "canonical_to_local",
    "initialize",
    "local_to_canonical",
    "parse_address",
    "position_for",
    "run_layout",
]
