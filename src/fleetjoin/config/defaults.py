"""Default configuration values for fleetjoin."""

from pathlib import Path

# Default paths
DEFAULT_CONFIG_DIR = Path.home() / ".fleetjoin"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
SYSTEM_CONFIG_FILE = Path("/etc/fleetjoin/config.yaml")
PROJECT_CONFIG_NAME = ".fleetjoin.yaml"
ENV_PREFIX = "FLEETJOIN_"

# Fleet-management API
DEFAULT_API_URL = "https://api.balena-cloud.com"
DEFAULT_BASE_URL = "balena-cloud.com"
DEFAULT_TOKEN_ENV = "FLEETJOIN_API_TOKEN"
DEFAULT_API_TIMEOUT = 30

# Device-local SSH
DEFAULT_SSH_USER = "root"
DEFAULT_SSH_PORT = 22222
DEFAULT_SSH_TIMEOUT = 30

# Discovery and liveness probing
DEFAULT_DISCOVERY_TIMEOUT_MS = 4000
DEFAULT_LIVENESS_PORT = 2375
DEFAULT_LIVENESS_TIMEOUT_MS = 2000
DEFAULT_MAX_PARALLEL_PROBES = 10
# Devices advertise SSH under a vendor subtype
DEFAULT_SERVICE_TYPE = "_resin-device._sub._ssh._tcp.local."

# Device configuration
DEFAULT_CONFIG_TOOL = "os-config"
MIN_OS_VERSION = "v2.14.0"
DEFAULT_POLL_INTERVAL_MINUTES = 10
DEFAULT_CONNECTIVITY = "connman"
OS_RELEASE_PATH = "/etc/os-release"
