from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Optional, Union

from .config import board_config


class Player(IntEnum):
    HOST = 0
    GUEST = 1

    @property
    def opponent(self) -> "Player":
        return Player.GUEST if self is Player.HOST else Player.HOST

    @property
    def display_name(self) -> str:
        return self.name.capitalize()


@dataclass(slots=True)
class Position:
    """One tower on the ring. ``owner`` only means something when occupied."""

    occupant_count: int = 0
    owner: Player = Player.GUEST

    def __post_init__(self) -> None:
        if not 0 <= self.occupant_count <= board_config.MAX_PIECES_PER_TOWER:
            raise ValueError(
                f"occupant_count must be in 0..{board_config.MAX_PIECES_PER_TOWER}, "
                f"got {self.occupant_count}"
            )
        self.owner = Player(self.owner)

    @property
    def is_empty(self) -> bool:
        return self.occupant_count == 0

    def count_for(self, player: Player) -> int:
        return self.occupant_count if self.owner == player else 0


@dataclass(slots=True)
class Bar:
    host_displaced_count: int = 0
    guest_displaced_count: int = 0

    def count_for(self, player: Player) -> int:
        if player == Player.HOST:
            return self.host_displaced_count
        return self.guest_displaced_count


@dataclass(slots=True, frozen=True)
class RunLayout:
    """Where a canonical index sits once the ring is cut into four runs of six."""

    run: int  # 0..3, clockwise from the bottom right
    offset: int  # 0..5 inside the run, in canonical order
    column: int  # 0..5 counted outwards from the bar
    side: int  # +1 right of the bar, -1 left of it
    top: bool


class SessionPhase(Enum):
    IDLE = "idle"
    CREATING = "creating"
    CREATED = "created"
    JOINING = "joining"
    STARTED = "started"
    FAILED = "failed"

    @property
    def is_pending(self) -> bool:
        return self in (SessionPhase.CREATING, SessionPhase.JOINING)

    @property
    def is_terminal(self) -> bool:
        return self in (SessionPhase.CREATED, SessionPhase.STARTED, SessionPhase.FAILED)


@dataclass(slots=True, frozen=True)
class SessionState:
    phase: SessionPhase = SessionPhase.IDLE
    reason: Optional[str] = None  # set only when FAILED

    @classmethod
    def failed(cls, reason: str) -> "SessionState":
        return cls(SessionPhase.FAILED, reason)

    def __str__(self) -> str:
        if self.phase is SessionPhase.FAILED:
            return f"Failed({self.reason})"
        return self.phase.name.capitalize()


# --- Host loop intents ---
@dataclass(slots=True, frozen=True)
class CreateMatch:
    pass


@dataclass(slots=True, frozen=True)
class JoinMatch:
    address: str


Intent = Union[CreateMatch, JoinMatch]


class SessionEventKind(Enum):
    PHASE_CHANGED = "phase_changed"
    REJECTED = "rejected"


@dataclass(slots=True, frozen=True)
class SessionEvent:
    kind: SessionEventKind
    state: SessionState
    previous: Optional[SessionState] = None
    detail: Optional[str] = None
