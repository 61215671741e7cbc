import unittest
from decimal import Decimal
from unittest import mock

import requests

from walletgraph.adapters.ledger.blockchain_info_provider import (
    BlockchainInfoProvider,
    normalize_blockchain_info_tx,
    normalize_blockchain_info_wallet,
)
from walletgraph.adapters.ledger.esplora_provider import (
    EsploraProvider,
    normalize_esplora_tx,
    normalize_esplora_wallet,
)
from walletgraph.adapters.ledger.etherscan_provider import EtherscanProvider, normalize_etherscan_tx
from walletgraph.adapters.ledger.ethplorer_provider import EthplorerProvider, normalize_ethplorer_wallet
from walletgraph.adapters.ledger.tronscan_provider import normalize_tronscan_tx
from walletgraph.core.dto import UNKNOWN_ADDRESS
from walletgraph.core.enums import Network, TxStatus
from walletgraph.core.errors import NotFoundError, ProviderError


def _response(status=200, body=None):
    resp = mock.Mock()
    resp.status_code = status
    resp.json.return_value = body
    if status >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    else:
        resp.raise_for_status.return_value = None
    return resp


def _session(*responses):
    session = mock.Mock()
    session.headers = {}
    session.get.side_effect = list(responses)
    return session


@mock.patch("walletgraph.adapters.ledger.http_base.backoff_sleep")
class HttpProviderTests(unittest.TestCase):
    def test_not_found_is_not_retried(self, _sleep) -> None:
        session = _session(_response(404))
        provider = BlockchainInfoProvider(session=session, requests_per_sec=1000)
        with self.assertRaises(NotFoundError):
            provider.get_wallet("1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa")
        self.assertEqual(session.get.call_count, 1)

    def test_server_error_is_retried(self, sleep) -> None:
        body = {"final_balance": 150000000, "total_received": 200000000, "total_sent": 50000000, "n_tx": 2}
        session = _session(_response(500), _response(200, body))
        provider = BlockchainInfoProvider(session=session, requests_per_sec=1000)

        wallet = provider.get_wallet("1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa")

        self.assertEqual(wallet.balance, Decimal("1.5"))
        self.assertEqual(session.get.call_count, 2)
        self.assertEqual(sleep.call_count, 1)

    def test_retries_exhausted(self, _sleep) -> None:
        session = _session(_response(429), _response(503), _response(500))
        provider = BlockchainInfoProvider(session=session, requests_per_sec=1000, max_retries=3)
        with self.assertRaises(ProviderError):
            provider.get_transactions("1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa", 10)
        self.assertEqual(session.get.call_count, 3)

    def test_etherscan_rate_limit_body_is_retried(self, _sleep) -> None:
        limited = {"status": "0", "message": "NOTOK", "result": "Max rate limit reached"}
        ok = {"status": "1", "message": "OK", "result": []}
        session = _session(_response(200, limited), _response(200, ok))
        provider = EtherscanProvider(api_key="k", session=session, requests_per_sec=1000)

        self.assertEqual(provider.get_transactions("0x" + "ab" * 20, 5), [])
        self.assertEqual(session.get.call_count, 2)

    def test_etherscan_empty_history_is_not_an_error(self, _sleep) -> None:
        empty = {"status": "0", "message": "No transactions found", "result": []}
        provider = EtherscanProvider(api_key="k", session=_session(_response(200, empty)), requests_per_sec=1000)
        self.assertEqual(provider.get_transactions("0x" + "ab" * 20, 5), [])

    def test_etherscan_wallet(self, _sleep) -> None:
        session = _session(
            _response(200, {"status": "1", "message": "OK", "result": "2500000000000000000"}),
            _response(200, {"jsonrpc": "2.0", "id": 1, "result": "0x1a"}),
        )
        provider = EtherscanProvider(api_key="k", session=session, requests_per_sec=1000)

        wallet = provider.get_wallet("0x" + "AB" * 20)

        self.assertEqual(wallet.address, "0x" + "ab" * 20)
        self.assertEqual(wallet.balance, Decimal("2.5"))
        self.assertEqual(wallet.transaction_count, 26)
        self.assertIn("total_received", wallet.missing_fields)

    def test_ethplorer_unknown_address(self, _sleep) -> None:
        body = {"error": {"code": 104, "message": "Invalid address format"}}
        provider = EthplorerProvider(session=_session(_response(200, body)), requests_per_sec=1000)
        with self.assertRaises(NotFoundError):
            provider.get_wallet("0x" + "ab" * 20)

    def test_esplora_wallet_survives_failed_last_seen_lookup(self, _sleep) -> None:
        stats = {
            "chain_stats": {"funded_txo_sum": 500000000, "spent_txo_sum": 100000000, "tx_count": 2},
            "mempool_stats": {"funded_txo_sum": 0, "spent_txo_sum": 0, "tx_count": 0},
        }
        session = _session(_response(200, stats), _response(500), _response(500), _response(500))
        provider = EsploraProvider.litecoinspace(session=session, requests_per_sec=1000, max_retries=3)

        wallet = provider.get_wallet("LVg2kJoFNg45Nbpy53h7Fe1wKyeXVRhMH9")

        self.assertEqual(wallet.balance, Decimal("4"))
        self.assertEqual(wallet.transaction_count, 2)
        self.assertIsNone(wallet.last_seen)
        self.assertIn("last_seen", wallet.missing_fields)
        self.assertEqual(session.get.call_count, 4)

    def test_esplora_wallet_last_seen_from_newest_tx(self, _sleep) -> None:
        stats = {"chain_stats": {"funded_txo_sum": 100, "spent_txo_sum": 0, "tx_count": 1}}
        txs = [{"txid": "ee" * 32, "status": {"confirmed": True, "block_time": 1690000000}, "vin": [], "vout": []}]
        session = _session(_response(200, stats), _response(200, txs))
        provider = EsploraProvider.blockstream(session=session, requests_per_sec=1000)

        wallet = provider.get_wallet("1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa")

        self.assertEqual(wallet.last_seen, 1690000000)
        self.assertNotIn("last_seen", wallet.missing_fields)


class NormalizerTests(unittest.TestCase):
    def test_blockchain_info_tx(self) -> None:
        tx = normalize_blockchain_info_tx({
            "hash": "ff" * 32,
            "time": 1600000000,
            "block_height": 650000,
            "fee": 1000,
            "inputs": [{"prev_out": {"addr": "1Src", "value": 100001000}}],
            "out": [
                {"addr": "1Dst", "value": 60000000, "spent": True},
                {"value": 40000000},
            ],
        })
        self.assertEqual(tx.status, TxStatus.CONFIRMED)
        self.assertEqual(tx.value, Decimal("1"))
        self.assertEqual(tx.fee, Decimal("0.00001"))
        self.assertEqual(tx.outputs[1].address, UNKNOWN_ADDRESS)
        self.assertEqual(tx.counterparties("1Src"), ("1Dst",))

    def test_blockchain_info_pending_tx(self) -> None:
        tx = normalize_blockchain_info_tx({"hash": "aa" * 32, "inputs": [], "out": []})
        self.assertEqual(tx.status, TxStatus.PENDING)
        self.assertIn("time", tx.missing_fields)

    def test_blockchain_info_wallet_first_seen_needs_full_history(self) -> None:
        partial = normalize_blockchain_info_wallet("1A", {"n_tx": 5, "txs": [{"time": 200}]})
        self.assertIsNone(partial.first_seen)
        self.assertEqual(partial.last_seen, 200)

        full = normalize_blockchain_info_wallet("1A", {"n_tx": 2, "txs": [{"time": 200}, {"time": 100}]})
        self.assertEqual(full.first_seen, 100)

    def test_esplora(self) -> None:
        wallet = normalize_esplora_wallet(
            "ltc1q",
            {
                "chain_stats": {"funded_txo_sum": 300000000, "spent_txo_sum": 100000000, "tx_count": 3},
                "mempool_stats": {"funded_txo_sum": 0, "spent_txo_sum": 0, "tx_count": 1},
            },
            Network.LITECOIN,
        )
        self.assertEqual(wallet.balance, Decimal("2"))
        self.assertEqual(wallet.transaction_count, 4)
        self.assertEqual(wallet.network, Network.LITECOIN)

        tx = normalize_esplora_tx({
            "txid": "bb" * 32,
            "fee": 500,
            "status": {"confirmed": False},
            "vin": [{"prevout": {"scriptpubkey_address": "A", "value": 1000}}],
            "vout": [{"scriptpubkey_address": "B", "value": 500}],
        })
        self.assertEqual(tx.status, TxStatus.PENDING)
        self.assertEqual(tx.value, Decimal("0.000005"))

    def test_etherscan_tx(self) -> None:
        tx = normalize_etherscan_tx({
            "hash": "0x" + "cc" * 32,
            "timeStamp": "1650000000",
            "blockNumber": "14600000",
            "from": "0xAAA",
            "to": "",
            "value": "1000000000000000000",
            "gasUsed": "21000",
            "gasPrice": "1000000000",
            "isError": "1",
        })
        self.assertEqual(tx.status, TxStatus.FAILED)
        self.assertEqual(tx.inputs[0].address, "0xaaa")
        self.assertEqual(tx.outputs[0].address, UNKNOWN_ADDRESS)
        self.assertEqual(tx.value, Decimal("1"))
        self.assertEqual(tx.fee, Decimal("0.000021"))

    def test_ethplorer_wallet(self) -> None:
        wallet = normalize_ethplorer_wallet({
            "address": "0xABC",
            "ETH": {"balance": 2, "totalIn": 5, "totalOut": 3, "price": {"rate": 1000}},
            "countTxs": 7,
        })
        self.assertEqual(wallet.address, "0xabc")
        self.assertEqual(wallet.balance_usd, Decimal("2000"))
        self.assertEqual(wallet.missing_fields, ())

    def test_tronscan_tx(self) -> None:
        tx = normalize_tronscan_tx({
            "hash": "dd" * 32,
            "timestamp": 1700000000123,
            "ownerAddress": "TSender",
            "toAddress": "TReceiver",
            "amount": 2500000,
            "contractRet": "SUCCESS",
            "confirmed": True,
            "cost": {"fee": 1100000},
        })
        self.assertEqual(tx.timestamp, 1700000000)
        self.assertEqual(tx.value, Decimal("2.5"))
        self.assertEqual(tx.fee, Decimal("1.1"))
        self.assertEqual(tx.status, TxStatus.CONFIRMED)


if __name__ == "__main__":
    unittest.main()
