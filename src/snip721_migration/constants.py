"""Constants shared by the deployment and migration tooling."""

from typing import Final

# ---------------------------------------------------------------------------
# Chain constants
# ---------------------------------------------------------------------------
FEE_DENOM: Final[str] = "uscrt"
DEFAULT_GAS_PRICE: Final[float] = 0.1  # uscrt per gas unit

# Simulated gas is padded by this factor before broadcasting.
GAS_SIMULATION_MARGIN: Final[float] = 1.1

# Used when simulation fails; simulation failure does not imply the call will.
DEFAULT_GAS_LIMIT: Final[int] = 500_000
UPLOAD_GAS_LIMIT: Final[int] = 5_000_000
BOOTSTRAP_GAS_LIMIT: Final[int] = 100_000

DEFAULT_RPC_TIMEOUT: Final[float] = 60.0  # seconds
TX_POLL_INTERVAL: Final[float] = 1.0  # seconds between tx inclusion checks

# ---------------------------------------------------------------------------
# Tx event attributes
# ---------------------------------------------------------------------------
MESSAGE_EVENT: Final[str] = "message"
CODE_ID_ATTR: Final[str] = "code_id"
CONTRACT_ADDRESS_ATTR: Final[str] = "contract_address"

# ---------------------------------------------------------------------------
# Artifacts
# ---------------------------------------------------------------------------
GZIP_MAGIC: Final[bytes] = b"\x1f\x8b"
DEPLOYED_DIR_NAME: Final[str] = "deployed"

# ---------------------------------------------------------------------------
# Permits (SNIP-24)
# ---------------------------------------------------------------------------
DEFAULT_PERMIT_NAME: Final[str] = "test"
PERMIT_MSG_TYPE: Final[str] = "query_permit"
PERMIT_PUBKEY_TYPE: Final[str] = "tendermint/PubKeySecp256k1"

# ---------------------------------------------------------------------------
# Migration
# ---------------------------------------------------------------------------
ENTROPY_PREFIX: Final[str] = "sometimes you gotta close a door to open a window: "
MAX_PAGE_CALLS: Final[int] = 10_000

# Error text emitted by the contracts (note the contracts' own "contact" spelling).
MODE_ERROR_PREFIX: Final[str] = "Not available in contact mode: "
ADMIN_PERMIT_ERROR: Final[str] = "Only the admins permit is allowed to initiate migration"

# ---------------------------------------------------------------------------
# Dealer defaults
# ---------------------------------------------------------------------------
DEFAULT_PURCHASE_PRICE: Final[int] = 2_000_000  # uscrt
FAUCET_TARGET_BALANCE: Final[int] = 100_000_000  # uscrt
FAUCET_MAX_BALANCE_POLLS: Final[int] = 10

# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------
CONTRACT_PATH_ENV: Final[str] = "CONTRACT_PATH"
TESTNET_TYPE_ENV: Final[str] = "TESTNET_TYPE"
TEST_ENV_ENV: Final[str] = "TEST_ENV"
GITPOD_ID_ENV: Final[str] = "GITPOD_ID"
MNEMONIC_ENV: Final[str] = "DEPLOYER_MNEMONIC"
NODES_CONFIG_ENV: Final[str] = "NODES_CONFIG"
RPC_TIMEOUT_ENV: Final[str] = "RPC_TIMEOUT"
CI_ENV_ID: Final[str] = "CI"
DEFAULT_NODES_CONFIG: Final[str] = "config/nodes.json"
