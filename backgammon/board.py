from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np
from loguru import logger

from .config import board_config
from .types import Bar, Player, Position, RunLayout


def _compute_translations() -> Tuple[Tuple[int, ...], ...]:
    # Host sees the canonical layout; Guest sees it rotated by 180 degrees.
    last = board_config.TOWERS_COUNT - 1
    identity = tuple(range(board_config.TOWERS_COUNT))
    mirrored = tuple(last - i for i in range(board_config.TOWERS_COUNT))
    return identity, mirrored


_TRANSLATIONS = _compute_translations()


def _check_index(index: int) -> int:
    if not 0 <= index < board_config.TOWERS_COUNT:
        raise IndexError(
            f"Tower index {index} outside 0..{board_config.TOWERS_COUNT - 1}"
        )
    return index


def local_to_canonical(player: Player, local_index: int) -> int:
    """Map a player's 0-indexed local tower to the shared canonical index."""
    return _TRANSLATIONS[Player(player)][_check_index(local_index)]


def canonical_to_local(player: Player, canonical_index: int) -> int:
    """Inverse of :func:`local_to_canonical`. Both tables are involutions."""
    return _TRANSLATIONS[Player(player)][_check_index(canonical_index)]


def run_layout(canonical_index: int) -> RunLayout:
    """Split the ring into four runs of six and locate ``canonical_index``.

    Runs 0 and 1 form the bottom edge, 2 and 3 the top edge. Runs 0 and 3 are
    right of the bar. Every screen-side decision must go through this function
    so both players agree on which quadrant a tower belongs to.
    """
    _check_index(canonical_index)
    run, offset = divmod(canonical_index, board_config.RUN_LENGTH)
    last = board_config.RUN_LENGTH - 1
    column = last - offset if run % 2 == 0 else offset
    side = 1 if run in (0, 3) else -1
    return RunLayout(run=run, offset=offset, column=column, side=side, top=run >= 2)


def position_for(canonical_index: int, occupant_slot: int) -> Tuple[float, float]:
    """Screen position of the ``occupant_slot``-th piece stacked on a tower."""
    if occupant_slot < 0:
        raise IndexError(f"Negative occupant slot {occupant_slot}")
    layout = run_layout(canonical_index)
    x = layout.side * (
        board_config.BAR_WIDTH * 0.5 + layout.column * board_config.POINT_SPACING
    )
    if layout.top:
        y = (
            board_config.BOARD_HEIGHT
            - board_config.TOP_MARGIN
            - occupant_slot * board_config.PIECE_SPACING
        )
    else:
        y = occupant_slot * board_config.PIECE_SPACING - board_config.BOTTOM_OFFSET
    return x, y


@dataclass(slots=True)
class Board:
    """Owns tower occupancy and the bar (no movement rules)."""

    towers: List[Position] = field(
        default_factory=lambda: [
            Position() for _ in range(board_config.TOWERS_COUNT)
        ]
    )
    bar: Bar = field(default_factory=Bar)

    def __post_init__(self) -> None:
        if len(self.towers) != board_config.TOWERS_COUNT:
            raise ValueError(
                f"Board needs {board_config.TOWERS_COUNT} towers, got {len(self.towers)}"
            )

    def tower_for(self, player: Player, local_index: int) -> Position:
        """Read a tower through ``player``'s own frame."""
        return self.towers[local_to_canonical(player, local_index)]

    def piece_count(self, player: Player) -> int:
        on_board = sum(tower.count_for(player) for tower in self.towers)
        return on_board + self.bar.count_for(player)

    def occupied(self, player: Player) -> list[int]:
        """Local indices (in ``player``'s frame) of towers ``player`` holds."""
        return [
            canonical_to_local(player, idx)
            for idx, tower in enumerate(self.towers)
            if tower.count_for(player)
        ]

    def is_valid(self) -> bool:
        for player in Player:
            count = self.piece_count(player)
            if count != board_config.PIECES_PER_PLAYER:
                logger.warning(
                    f"{player.display_name} has {count} pieces, "
                    f"expected {board_config.PIECES_PER_PLAYER}"
                )
                return False
        return True

    def build_array(self, player: Player) -> np.ndarray:
        """Return a (3, TOWERS_COUNT) int array in ``player``'s frame.

        Rows:
        0: Own pieces per local tower
        1: Opponent pieces per local tower
        2: Bar counts (own in column 0, opponent in column 1)
        """
        player = Player(player)
        out = np.zeros((3, board_config.TOWERS_COUNT), dtype=np.int64)
        for local in range(board_config.TOWERS_COUNT):
            tower = self.tower_for(player, local)
            out[0, local] = tower.count_for(player)
            out[1, local] = tower.count_for(player.opponent)
        out[2, 0] = self.bar.count_for(player)
        out[2, 1] = self.bar.count_for(player.opponent)
        return out

    def describe(self, player: Player = Player.HOST) -> str:
        player = Player(player)
        result = f"Board ({player.display_name} view):\n"
        for local in range(board_config.TOWERS_COUNT):
            tower = self.tower_for(player, local)
            if not tower.is_empty:
                result += (
                    f"Tower {local + 1}: {tower.occupant_count} x "
                    f"{tower.owner.display_name}\n"
                )
        result += (
            f"Bar: host={self.bar.host_displaced_count} "
            f"guest={self.bar.guest_displaced_count}\n"
        )
        return result

    def __str__(self) -> str:
        return self.describe(Player.HOST)


def initialize() -> Board:
    """Build a board with the standard starting layout."""
    board = Board()
    for player in Player:
        for tower_id, pieces in zip(
            board_config.START_TOWERS, board_config.START_PIECES
        ):
            canonical = local_to_canonical(player, tower_id - 1)
            board.towers[canonical] = Position(occupant_count=pieces, owner=player)
    return board
