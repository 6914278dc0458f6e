from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from charging_simulator.config.constants import (
    DEFAULT_ELEMENT_START_DELAY,
    DEFAULT_ELEMENTS_PER_WORKER,
    DEFAULT_LOG_ERROR_FILE,
    DEFAULT_LOG_FILE,
    DEFAULT_LOG_FORMAT,
    DEFAULT_LOG_LEVEL,
    DEFAULT_POOL_MAX_SIZE,
    DEFAULT_POOL_MIN_SIZE,
    DEFAULT_UI_SERVER_HOST,
    DEFAULT_UI_SERVER_PORT,
    DEFAULT_WORKER_START_DELAY,
)


class ApplicationProtocol(str, Enum):
    HTTP = "http"
    WS = "ws"


class StorageType(str, Enum):
    JSON_FILE = "jsonfile"
    MONGO_DB = "mongodb"
    SQLITE = "sqlite"
    MARIA_DB = "mariadb"
    MYSQL = "mysql"


class SupervisionUrlDistribution(str, Enum):
    ROUND_ROBIN = "round-robin"
    RANDOM = "random"
    CHARGING_STATION_AFFINITY = "charging-station-affinity"


class WorkerProcessType(str, Enum):
    WORKER_SET = "workerSet"
    STATIC_POOL = "staticPool"
    DYNAMIC_POOL = "dynamicPool"


class WorkerChoiceStrategy(str, Enum):
    ROUND_ROBIN = "ROUND_ROBIN"
    LEAST_USED = "LEAST_USED"
    LEAST_BUSY = "LEAST_BUSY"
    FAIR_SHARE = "FAIR_SHARE"
    WEIGHTED_ROUND_ROBIN = "WEIGHTED_ROUND_ROBIN"


class FileType(str, Enum):
    AUTHORIZATION = "authorization"
    CONFIGURATION = "configuration"
    CHARGING_STATION_CONFIGURATION = "charging station configuration"
    CHARGING_STATION_TEMPLATE = "charging station template"
    PERFORMANCE_RECORDS = "performance records"


class SectionModel(BaseModel):
    """
    Base for all section views.

    Views mirror the camelCase keys of the configuration document and keep any key they
    do not know about. They are built with `construct_section`, which skips validation:
    the document is trusted as-is beyond the existence of its keys.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_dict(self) -> dict[str, Any]:
        """Dump as a camelCase-keyed dict. Unset (None) fields are left out entirely."""
        return self.model_dump(mode="python", by_alias=True, exclude_none=True)


SectionT = TypeVar("SectionT", bound=SectionModel)


def construct_section(model_cls: type[SectionT], data: Mapping[str, Any]) -> SectionT:
    return model_cls.model_construct(**dict(data))


def section_defaults(model_cls: type[SectionModel]) -> dict[str, Any]:
    """Return the built-in defaults of a section as a camelCase-keyed dict."""
    return model_cls().to_dict()


class UIServerOptions(SectionModel):
    # None on platforms that dictate the bind address; `to_dict` then omits the key.
    host: Optional[str] = DEFAULT_UI_SERVER_HOST
    port: Optional[int] = DEFAULT_UI_SERVER_PORT


class UIServerConfiguration(SectionModel):
    enabled: bool = False
    type: str = ApplicationProtocol.WS.value
    options: UIServerOptions = Field(default_factory=UIServerOptions)


class StorageConfiguration(SectionModel):
    enabled: bool = False
    type: str = StorageType.JSON_FILE.value
    # Filled in by the store: the default URI depends on its data directory.
    uri: Optional[str] = None


class WorkerConfiguration(SectionModel):
    process_type: str = WorkerProcessType.WORKER_SET.value
    start_delay: int = DEFAULT_WORKER_START_DELAY
    elements_per_worker: int = DEFAULT_ELEMENTS_PER_WORKER
    element_start_delay: int = DEFAULT_ELEMENT_START_DELAY
    pool_min_size: int = DEFAULT_POOL_MIN_SIZE
    pool_max_size: int = DEFAULT_POOL_MAX_SIZE
    pool_strategy: str = WorkerChoiceStrategy.ROUND_ROBIN.value


class LoggingConfiguration(SectionModel):
    console: bool = False
    format: str = DEFAULT_LOG_FORMAT
    rotate: bool = True
    # False means "no limit", mirroring the document's own convention.
    max_files: Union[int, str, bool, None] = False
    max_size: Union[int, str, bool, None] = False
    level: str = DEFAULT_LOG_LEVEL
    file: str = DEFAULT_LOG_FILE
    error_file: str = DEFAULT_LOG_ERROR_FILE


class StationTemplateUrl(SectionModel):
    file: Optional[str] = None
    number_of_stations: Optional[int] = None
