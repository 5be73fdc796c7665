"""Constants for tandem CLI."""

# Subprocess timeouts (seconds)
SSH_TIMEOUT = 30
SSH_CONNECT_TIMEOUT = 5
MUTAGEN_TIMEOUT = 600  # flushes can take a while on first sync
DOCKER_TIMEOUT = 60
DEVCONTAINER_TIMEOUT = 900
INIT_TOOL_CHECK_TIMEOUT = 10

# Local layout
TANDEM_HOME_ENV = "TANDEM_HOME"
TANDEM_HOME_DIR = ".tandem"
CONFIG_FILENAME = "config.toml"
PROJECTS_DIR_NAME = "Projects"

# Coordination records
LOCKS_DIR_NAME = ".locks"
LOCK_SUFFIX = ".lock"
STATE_DIR_NAME = ".state"
STATE_FILE_NAME = "state.lock"
SESSION_TTL_HOURS = 24
SESSION_FILE_MODE = 0o400
SESSION_HMAC_KEY = "tandem-session-integrity-v1"

# Sync engine
MUTAGEN_BINARY = "mutagen"
SYNC_SESSION_PREFIX = "tandem"
DEFAULT_SYNC_MODE = "two-way-resolved"
DEFAULT_IGNORE = [
    ".git/index.lock",
    "node_modules",
    "__pycache__",
    ".venv",
    "*.pyc",
    ".DS_Store",
]

# Container runtime
DEVCONTAINER_LABEL = "devcontainer.local_folder"
WORKSPACE_PATH_PREFIX = "/workspaces"

# Encryption
ENCRYPTION_KEY_LENGTH = 32
ENCRYPTION_IV_LENGTH = 16
ENCRYPTION_TAG_LENGTH = 16
SCRYPT_N = 2**15
SCRYPT_R = 8
SCRYPT_P = 1
MAX_PASSPHRASE_ATTEMPTS = 3
