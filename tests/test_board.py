"""Tests for the board topology model."""

import unittest

from backgammon.board import (
    Board,
    canonical_to_local,
    initialize,
    local_to_canonical,
    position_for,
    run_layout,
)
from backgammon.config import board_config
from backgammon.types import Bar, Player, Position


class IndexMappingTests(unittest.TestCase):
    def test_mapping_is_involution_for_both_players(self):
        for player in Player:
            for i in range(24):
                self.assertEqual(
                    canonical_to_local(player, local_to_canonical(player, i)), i
                )
                self.assertEqual(
                    local_to_canonical(player, canonical_to_local(player, i)), i
                )

    def test_host_sees_canonical_layout(self):
        for i in range(24):
            self.assertEqual(local_to_canonical(Player.HOST, i), i)

    def test_guest_sees_mirrored_layout(self):
        for i in range(24):
            self.assertEqual(local_to_canonical(Player.GUEST, i), 23 - i)

    def test_accepts_plain_ints_for_player(self):
        self.assertEqual(local_to_canonical(1, 0), 23)

    def test_out_of_range_index_raises(self):
        for bad in (-1, 24, 100):
            with self.assertRaises(IndexError):
                local_to_canonical(Player.HOST, bad)
            with self.assertRaises(IndexError):
                canonical_to_local(Player.GUEST, bad)


class RunLayoutTests(unittest.TestCase):
    def test_four_runs_of_six(self):
        runs = [run_layout(i).run for i in range(24)]
        for run in range(4):
            self.assertEqual(runs.count(run), 6)
        self.assertEqual(runs, sorted(runs))

    def test_run_membership_is_frame_independent(self):
        # Guest's local i and Host's local 23 - i are the same physical tower.
        for local in range(24):
            self.assertEqual(
                run_layout(local_to_canonical(Player.GUEST, local)),
                run_layout(local_to_canonical(Player.HOST, 23 - local)),
            )

    def test_guest_first_tower_is_host_last(self):
        layout = run_layout(local_to_canonical(Player.GUEST, 0))
        self.assertEqual(layout.run, 3)
        self.assertTrue(layout.top)
        self.assertEqual(layout.side, 1)

    def test_sides_and_edges(self):
        self.assertEqual(run_layout(0).side, 1)
        self.assertEqual(run_layout(6).side, -1)
        self.assertEqual(run_layout(12).side, -1)
        self.assertEqual(run_layout(18).side, 1)
        self.assertFalse(run_layout(11).top)
        self.assertTrue(run_layout(12).top)

    def test_columns_count_out_from_bar(self):
        self.assertEqual(run_layout(5).column, 0)
        self.assertEqual(run_layout(0).column, 5)
        self.assertEqual(run_layout(6).column, 0)
        self.assertEqual(run_layout(17).column, 0)
        self.assertEqual(run_layout(18).column, 0)
        self.assertEqual(run_layout(23).column, 5)


class PositionForTests(unittest.TestCase):
    def test_bottom_right_corner(self):
        self.assertEqual(position_for(0, 0), (425.0, -10.0))

    def test_bottom_stack_grows_upwards(self):
        _, y0 = position_for(3, 0)
        _, y1 = position_for(3, 1)
        self.assertAlmostEqual(y1 - y0, board_config.PIECE_SPACING)

    def test_top_stack_grows_downwards(self):
        self.assertEqual(position_for(23, 1), (425.0, 570.0))
        self.assertEqual(position_for(17, 0), (-50.0, 635.0))

    def test_left_of_bar(self):
        self.assertEqual(position_for(6, 0), (-50.0, -10.0))
        self.assertEqual(position_for(11, 0), (-425.0, -10.0))

    def test_mirrored_towers_sit_opposite(self):
        for i in range(24):
            x, _ = position_for(i, 0)
            mx, _ = position_for(23 - i, 0)
            self.assertEqual(x, mx)
            self.assertNotEqual(run_layout(i).top, run_layout(23 - i).top)

    def test_invalid_slot_raises(self):
        with self.assertRaises(IndexError):
            position_for(0, -1)
        with self.assertRaises(IndexError):
            position_for(24, 0)


class InitialLayoutTests(unittest.TestCase):
    def setUp(self):
        self.board = initialize()

    def test_thirty_pieces_on_board(self):
        total = sum(t.occupant_count for t in self.board.towers)
        self.assertEqual(total, 30)
        self.assertTrue(all(t.occupant_count <= 15 for t in self.board.towers))

    def test_fifteen_pieces_per_player(self):
        for player in Player:
            self.assertEqual(self.board.piece_count(player), 15)
        self.assertTrue(self.board.is_valid())

    def test_host_canonical_positions(self):
        expected = {0: 2, 11: 5, 16: 3, 18: 5}
        for idx, count in expected.items():
            tower = self.board.towers[idx]
            self.assertEqual(tower.owner, Player.HOST)
            self.assertEqual(tower.occupant_count, count)

    def test_guest_canonical_positions(self):
        expected = {23: 2, 12: 5, 7: 3, 5: 5}
        for idx, count in expected.items():
            tower = self.board.towers[idx]
            self.assertEqual(tower.owner, Player.GUEST)
            self.assertEqual(tower.occupant_count, count)

    def test_both_players_see_same_local_layout(self):
        self.assertEqual(
            sorted(self.board.occupied(Player.HOST)),
            sorted(self.board.occupied(Player.GUEST)),
        )
        self.assertEqual(self.board.occupied(Player.HOST), [0, 11, 16, 18])

    def test_tower_for_reads_through_player_frame(self):
        tower = self.board.tower_for(Player.GUEST, 0)
        self.assertEqual(tower.owner, Player.GUEST)
        self.assertEqual(tower.occupant_count, 2)

    def test_deterministic(self):
        self.assertEqual(initialize(), self.board)

    def test_bar_starts_empty(self):
        self.assertEqual(self.board.bar, Bar())


class BoardTests(unittest.TestCase):
    def test_position_bounds(self):
        Position(occupant_count=15, owner=Player.HOST)
        with self.assertRaises(ValueError):
            Position(occupant_count=16, owner=Player.HOST)
        with self.assertRaises(ValueError):
            Position(occupant_count=-1)

    def test_board_needs_24_towers(self):
        with self.assertRaises(ValueError):
            Board(towers=[Position() for _ in range(23)])

    def test_bar_counts_toward_total(self):
        board = initialize()
        board.towers[0] = Position(occupant_count=1, owner=Player.HOST)
        self.assertFalse(board.is_valid())
        board.bar.host_displaced_count = 1
        self.assertTrue(board.is_valid())

    def test_empty_tower_counts_for_nobody(self):
        tower = Position(occupant_count=0, owner=Player.HOST)
        self.assertEqual(tower.count_for(Player.HOST), 0)
        self.assertTrue(tower.is_empty)

    def test_build_array(self):
        board = initialize()
        arr = board.build_array(Player.GUEST)
        self.assertEqual(arr.shape, (3, 24))
        self.assertEqual(int(arr[0].sum()), 15)
        self.assertEqual(int(arr[1].sum()), 15)
        self.assertEqual(arr[0, 0], 2)
        # Host's first tower is the guest's last one.
        self.assertEqual(arr[1, 23], 2)
        self.assertEqual(list(arr[2, :2]), [0, 0])

    def test_describe_uses_player_frame(self):
        board = initialize()
        text = board.describe(Player.GUEST)
        self.assertIn("Guest view", text)
        self.assertIn("Tower 1: 2 x Guest", text)
        self.assertIn("Tower 24: 2 x Host", text)
        self.assertIn("Host view", str(board))


if __name__ == "__main__":
    unittest.main()
