import os
import unittest
from unittest.mock import patch

from backgammon.config import BoardConfig, LedgerConfig, board_config
from backgammon.errors import ConfigError


class TestBoardConfig(unittest.TestCase):
    def test_default_layout(self):
        self.assertEqual(board_config.TOWERS_COUNT, 24)
        self.assertEqual(sum(board_config.START_PIECES), 15)
        self.assertEqual(board_config.START_TOWERS, [1, 12, 17, 19])

    def test_mismatched_layout(self):
        with self.assertRaises(ValueError):
            BoardConfig(START_TOWERS=[1, 12], START_PIECES=[2, 5, 8])

    def test_layout_must_place_every_piece(self):
        with self.assertRaises(ValueError):
            BoardConfig(START_PIECES=[2, 5, 3, 4])


class TestLedgerConfig(unittest.TestCase):
    def test_defaults(self):
        cfg = LedgerConfig()
        self.assertEqual(cfg.max_gas_amount, 5000)
        self.assertEqual(cfg.gas_unit_price, 100)
        self.assertEqual(cfg.expiration_secs, 10)
        self.assertIsNone(cfg.chain_id)
        self.assertTrue(cfg.module_id.endswith("::backgammon"))

    def test_private_key_not_in_repr(self):
        cfg = LedgerConfig(private_key="0xsecret")
        self.assertNotIn("0xsecret", repr(cfg))

    def test_validate(self):
        for overrides in (
            {"max_gas_amount": 0},
            {"gas_unit_price": -1},
            {"expiration_secs": 0},
            {"fund_amount": -5},
            {"module_name": "back-gammon"},
            {"node_url": "garbage"},
            {"faucet_url": "ftp://faucet"},
        ):
            with self.subTest(**overrides), self.assertRaises(ConfigError):
                LedgerConfig(**overrides).validate()


class TestLedgerConfigFromEnv(unittest.TestCase):
    @patch.dict(os.environ, {}, clear=True)
    def test_from_env_defaults(self):
        cfg = LedgerConfig.from_env()
        self.assertEqual(cfg.node_url, "http://127.0.0.1:8080/v1")
        self.assertEqual(cfg.faucet_url, "http://127.0.0.1:8081")
        self.assertEqual(cfg.fund_amount, 100_000_000)
        self.assertEqual(cfg.private_key, "")

    @patch.dict(
        os.environ,
        {
            "LEDGER_NODE_URL": "https://node.example.com/v1/",
            "LEDGER_GAS_PRICE": "150",
            "LEDGER_CHAIN_ID": "2",
            "LEDGER_MODULE": "tavla",
        },
        clear=True,
    )
    def test_from_env_overrides(self):
        cfg = LedgerConfig.from_env()
        self.assertEqual(cfg.node_url, "https://node.example.com/v1")
        self.assertEqual(cfg.gas_unit_price, 150)
        self.assertEqual(cfg.chain_id, 2)
        self.assertTrue(cfg.module_id.endswith("::tavla"))

    @patch.dict(
        os.environ,
        {
            "APTOS_NODE_URL": "http://devnet:8080/v1",
            "APTOS_FAUCET_URL": "http://devnet:8081",
        },
        clear=True,
    )
    def test_falls_back_to_aptos_variables(self):
        cfg = LedgerConfig.from_env()
        self.assertEqual(cfg.node_url, "http://devnet:8080/v1")
        self.assertEqual(cfg.faucet_url, "http://devnet:8081")

    @patch.dict(
        os.environ,
        {"LEDGER_NODE_URL": "http://a:1/v1", "APTOS_NODE_URL": "http://b:2/v1"},
        clear=True,
    )
    def test_ledger_variable_wins(self):
        self.assertEqual(LedgerConfig.from_env().node_url, "http://a:1/v1")

    @patch.dict(os.environ, {"LEDGER_NODE_URL": "ftp://node"}, clear=True)
    def test_bad_scheme(self):
        with self.assertRaises(ConfigError):
            LedgerConfig.from_env()

    @patch.dict(os.environ, {"LEDGER_FAUCET_URL": "not a url"}, clear=True)
    def test_bad_faucet_url(self):
        with self.assertRaises(ConfigError):
            LedgerConfig.from_env()

    @patch.dict(os.environ, {"LEDGER_MAX_GAS": "lots"}, clear=True)
    def test_bad_integer(self):
        with self.assertRaises(ConfigError):
            LedgerConfig.from_env()

    @patch.dict(os.environ, {"LEDGER_EXPIRATION_SECS": "0"}, clear=True)
    def test_from_env_validates(self):
        with self.assertRaises(ConfigError):
            LedgerConfig.from_env()


if __name__ == "__main__":
    unittest.main()
