import json
import tempfile
import unittest
from decimal import Decimal
from pathlib import Path

from walletgraph.adapters.labels.static_label_adapter import StaticThreatLabelAdapter
from walletgraph.adapters.ledger.static_provider import StaticLedgerProvider
from walletgraph.core.enums import Network
from walletgraph.core.models import InvestigationOptions
from walletgraph.io.output_writer import write_result_json, write_summary_md
from walletgraph.services.investigation_service import InvestigationService
from walletgraph.services.ledger_gateway import LedgerGateway

ROOT = "0x" + "11" * 20
PEER = "0x" + "22" * 20

FIXTURE = {
    "network": "ethereum",
    "wallets": {
        ROOT: {"balance": "3.25", "transaction_count": 1},
        PEER: {"balance": "0"},
    },
    "transactions": [
        {"hash": "0x" + "01" * 32, "timestamp": 1700000000, "inputs": [[ROOT, "0.75"]], "outputs": [[PEER, "0.75"]]},
    ],
}


class OutputWriterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)

        fixture_path = Path(self.tmp.name) / "fixture.json"
        fixture_path.write_text(json.dumps(FIXTURE), encoding="utf-8")
        provider = StaticLedgerProvider.from_fixture(str(fixture_path))

        svc = InvestigationService(
            LedgerGateway({Network.ETHEREUM: [provider]}),
            StaticThreatLabelAdapter({}),
            clock=lambda: 1700000100,
        )
        self.result = svc.investigate(ROOT, options=InvestigationOptions(graph_depth=1))

    def test_result_json(self) -> None:
        path = write_result_json(self.result, str(Path(self.tmp.name) / "out"))
        data = json.loads(Path(path).read_text(encoding="utf-8"))

        self.assertEqual(data["wallet"]["address"], ROOT)
        self.assertEqual(data["wallet"]["balance"], "3.25")
        self.assertEqual(data["transactions"][0]["value"], "0.75")
        self.assertEqual(len(data["graph"]["nodes"]), 2)
        self.assertEqual(data["graph"]["edges"][0]["transactions"], 1)
        self.assertEqual(data["connected_wallets"][0]["address"], PEER)
        self.assertFalse(data["cancelled"])

    def test_summary_md(self) -> None:
        path = write_summary_md(self.result, str(Path(self.tmp.name) / "out"))
        text = Path(path).read_text(encoding="utf-8")

        self.assertIn(f"**{ROOT}**", text)
        self.assertIn("_No known threat attribution._", text)
        self.assertIn("**1 tx**", text)

    def test_label_file_is_merged_with_builtin(self) -> None:
        labels_path = Path(self.tmp.name) / "labels.json"
        labels_path.write_text(json.dumps({PEER: {"labels": ["scam"], "abuse_reports": 12}}), encoding="utf-8")
        adapter = StaticThreatLabelAdapter.from_file(str(labels_path))

        self.assertEqual(adapter.classify_address(PEER.upper().replace("0X", "0x")).abuse_reports, 12)
        self.assertTrue(adapter.classify_address("0xD90E2F925DA726B50C4ED8D0FB90AD053324F31B").is_mixer)


if __name__ == "__main__":
    unittest.main()
