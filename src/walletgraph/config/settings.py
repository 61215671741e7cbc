import os
from dotenv import load_dotenv
load_dotenv()

# ---- Shared HTTP ----
PROVIDER_TIMEOUT_SEC = int(os.environ.get("PROVIDER_TIMEOUT_SEC", "15"))
PROVIDER_MAX_RETRIES = int(os.environ.get("PROVIDER_MAX_RETRIES", "3"))
USER_AGENT = "walletgraph/0.1"

# ---- Bitcoin ----
BLOCKCHAIN_INFO_BASE_URL = "https://blockchain.info"
BLOCKCHAIN_INFO_REQUESTS_PER_SEC = 0.5      # ~30 req/min
BLOCKSTREAM_BASE_URL = "https://blockstream.info/api"
BLOCKSTREAM_REQUESTS_PER_SEC = 5.0

# ---- Litecoin ----
LITECOINSPACE_BASE_URL = "https://litecoinspace.org/api"
LITECOINSPACE_REQUESTS_PER_SEC = 5.0

# ---- Ethereum ----
ETHERSCAN_API_KEY = os.environ.get("ETHERSCAN_API_KEY")
ETHERSCAN_CHAIN_ID = 1          # Ethereum mainnet
ETHERSCAN_BASE_URL = "https://api.etherscan.io/v2/api"
ETHERSCAN_REQUESTS_PER_SEC = 5.0

ETHPLORER_API_KEY = os.environ.get("ETHPLORER_API_KEY", "freekey")
ETHPLORER_BASE_URL = "https://api.ethplorer.io"
ETHPLORER_REQUESTS_PER_SEC = 2.0

# ---- Tron ----
TRONSCAN_API_KEY = os.environ.get("TRONSCAN_API_KEY")
TRONSCAN_BASE_URL = "https://apilist.tronscanapi.com/api"
TRONSCAN_REQUESTS_PER_SEC = 5.0

# ---- Response cache (seconds) ----
CACHE_TTL_WALLET_INFO = 600
CACHE_TTL_TRANSACTIONS = 600
CACHE_TTL_CONFIRMED_TX = 24 * 3600
CACHE_TTL_UNCONFIRMED_TX = 60

# ---- Graph exploration ----
GRAPH_TX_PAGE_SIZE = 20
GRAPH_MAX_COUNTERPARTIES_PER_NODE = 10
GRAPH_MAX_WORKERS = int(os.environ.get("GRAPH_MAX_WORKERS", "1"))

# ---- Layout ----
LAYOUT_REPULSION = 5000.0
LAYOUT_ATTRACTION = 0.01
LAYOUT_CENTER_GRAVITY = 0.01
LAYOUT_DAMPING = 0.3
LAYOUT_ITERATIONS = 300
LAYOUT_RADIUS = 200.0
LAYOUT_WIDTH = 800.0
LAYOUT_HEIGHT = 600.0

# ---- Investigation defaults ----
INVESTIGATION_GRAPH_DEPTH = 2
INVESTIGATION_MAX_NODES = 30
INVESTIGATION_TX_LIMIT = 50
GRAPH_DEPTH_MIN = 1
GRAPH_DEPTH_MAX = 3

# ---- Threat labels ----
# JSON file: {"<address>": {"labels": [...], "is_mixer": true, ...}}
THREAT_LABELS_PATH = os.environ.get("THREAT_LABELS_PATH")

# Small built-in set (lowercase for EVM addresses).
KNOWN_THREAT_LABELS = {
    "0xd90e2f925da726b50c4ed8d0fb90ad053324f31b": {
        "labels": ["tornado-cash", "mixer"],
        "is_mixer": True,
        "sanctioned": True,
    },
    "0x28c6c06298d514db089934071355e5743bf21d60": {
        "labels": ["binance"],
        "is_exchange": True,
        "verified": True,
    },
}

# ---- Logging ----
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
LOG_JSON = os.environ.get("LOG_JSON", "0") == "1"
