from __future__ import annotations

from pathlib import Path

PACKAGE_DIR = Path(__file__).resolve().parent.parent

DEFAULT_CONFIG_PATH = PACKAGE_DIR / "assets" / "config.json"
DEFAULT_DATA_DIR = PACKAGE_DIR.parent

DEFAULT_UI_SERVER_HOST = "localhost"
DEFAULT_UI_SERVER_PORT = 8080

DEFAULT_PERFORMANCE_RECORDS_FILENAME = "performanceRecords.json"
DEFAULT_PERFORMANCE_RECORDS_DB_NAME = "e-mobility-charging-stations-simulator"

DEFAULT_LOG_STATISTICS_INTERVAL = 60  # seconds

DEFAULT_WORKER_START_DELAY = 500  # ms
DEFAULT_ELEMENT_START_DELAY = 0  # ms
DEFAULT_ELEMENTS_PER_WORKER = 1
DEFAULT_POOL_MIN_SIZE = 4
DEFAULT_POOL_MAX_SIZE = 16

DEFAULT_LOG_FORMAT = "simple"
DEFAULT_LOG_LEVEL = "info"
DEFAULT_LOG_FILE = "combined.log"
DEFAULT_LOG_ERROR_FILE = "error.log"

CLOUD_FOUNDRY_ENV_VAR = "VCAP_APPLICATION"
PORT_ENV_VAR = "PORT"

LOG_PREFIX_LABEL = "Simulator configuration |"
