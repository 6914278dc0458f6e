from __future__ import annotations

import asyncio
import copy
import inspect
import json
import logging
import os
import posixpath
import threading
from pathlib import Path
from typing import Any, Mapping, Optional, Union
from urllib.parse import urlparse

from charging_simulator.config.constants import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_DATA_DIR,
    DEFAULT_LOG_ERROR_FILE,
    DEFAULT_LOG_FILE,
    DEFAULT_LOG_FORMAT,
    DEFAULT_LOG_LEVEL,
    DEFAULT_LOG_STATISTICS_INTERVAL,
    DEFAULT_PERFORMANCE_RECORDS_DB_NAME,
    DEFAULT_PERFORMANCE_RECORDS_FILENAME,
)
from charging_simulator.config.deprecation import (
    log_prefix,
    migrate_deprecated_keys,
    warn_deprecated_configuration_key,
    warn_deprecated_configuration_section,
)
from charging_simulator.config.environment import is_cloud_foundry_environment, platform_port
from charging_simulator.config.errors import ReloadCallbackError, handle_file_exception
from charging_simulator.config.interfaces import (
    CloudEnvironmentPredicate,
    FileWatcher,
    ReloadCallback,
    WatchEvent,
    WatchHandle,
)
from charging_simulator.config.merge import deep_merge_dicts, shallow_merge_dicts
from charging_simulator.config.models import (
    FileType,
    LoggingConfiguration,
    StationTemplateUrl,
    StorageConfiguration,
    StorageType,
    SupervisionUrlDistribution,
    UIServerConfiguration,
    UIServerOptions,
    WorkerConfiguration,
    WorkerProcessType,
    construct_section,
    section_defaults,
)
from charging_simulator.config.watcher import WatchdogFileWatcher

logger = logging.getLogger(__name__)

# Legacy top-level worker keys, with the worker field each one still feeds when present.
_LEGACY_WORKER_KEYS: tuple[tuple[str, Optional[str], str], ...] = (
    ("useWorkerPool", None, "define the type of worker process model"),
    ("workerProcess", "processType", "define the type of worker process model"),
    ("workerStartDelay", "startDelay", "define the worker start delay"),
    ("chargingStationsPerWorker", "elementsPerWorker", "define the number of element(s) per worker"),
    ("elementStartDelay", "elementStartDelay", "define the worker's element start delay"),
    ("workerPoolMinSize", "poolMinSize", "define the worker pool minimum size"),
    ("workerPoolSize", None, "define the worker pool maximum size"),
    ("workerPoolMaxSize", "poolMaxSize", "define the worker pool maximum size"),
    ("workerPoolStrategy", "poolStrategy", "define the worker pool strategy"),
)

_RECONNECT_GUIDANCE = "Use 'ConnectionTimeOut' OCPP parameter in charging station template instead"


def _enum_value(value: Any) -> Any:
    return getattr(value, "value", value)


def _raise_reload_task_error(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    # Re-raised inside the loop callback so the loop's exception handler reports it.
    task.result()


class ConfigurationStore:
    """
    Lazily loaded, hot-reloadable view over the simulator configuration file.

    The parsed document is cached until the file watcher reports a content change. Every
    accessor recomputes its section from the cached document, so a reload is visible on
    the next call. Read and parse failures are logged and the accessors fall back to their
    built-in defaults.
    """

    def __init__(
        self,
        config_path: Union[str, Path] = DEFAULT_CONFIG_PATH,
        *,
        data_dir: Union[str, Path] = DEFAULT_DATA_DIR,
        env: Optional[Mapping[str, str]] = None,
        is_cloud_environment: CloudEnvironmentPredicate = is_cloud_foundry_environment,
        watcher: Optional[FileWatcher] = None,
    ):
        self.config_path = Path(config_path)
        self.data_dir = Path(os.path.abspath(data_dir))
        self._env: Mapping[str, str] = env if env is not None else os.environ
        self._is_cloud_environment = is_cloud_environment
        self._watcher: FileWatcher = watcher if watcher is not None else WatchdogFileWatcher()

        self._document: Optional[dict[str, Any]] = None
        self._generation = 0
        self._load_lock = threading.Lock()
        # Guards `_generation` and `_document` together; never held across file I/O.
        self._state_lock = threading.Lock()
        self._watch_handle: Optional[WatchHandle] = None

        self._on_reload: Optional[ReloadCallback] = None
        self._reload_loop: Optional[asyncio.AbstractEventLoop] = None
        self._reload_lock = threading.Lock()
        self._reload_running = False
        self._reload_pending = False

    # -------------------- Document lifecycle --------------------

    def get_document(self) -> Optional[dict[str, Any]]:
        """
        Return the cached configuration document, loading it on first access.

        Returns None when the file cannot be read or parsed. The returned dict is shared
        with every other reader and must not be mutated.
        """
        document = self._document
        if document is not None:
            return document
        with self._load_lock:
            document = self._document
            if document is not None:
                return document
            with self._state_lock:
                generation = self._generation
            document = self._read_document()
            if document is None:
                return None
            # A change event during the read means this content may already be stale.
            with self._state_lock:
                if generation == self._generation:
                    self._document = document
            if self._watch_handle is None:
                self._watch_handle = self._start_watch()
            return document

    def _read_document(self) -> Optional[dict[str, Any]]:
        try:
            raw = self.config_path.read_text(encoding="utf-8")
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError(f"Top-level JSON must be an object, got: {type(data).__name__}")
        except (OSError, ValueError) as e:
            handle_file_exception(self.config_path, FileType.CONFIGURATION, e, log_prefix())
            return None
        logger.info("%s Configuration loaded. path=%s", log_prefix(), self.config_path)
        return migrate_deprecated_keys(data)

    def _start_watch(self) -> Optional[WatchHandle]:
        try:
            return self._watcher.watch(self.config_path, self._on_file_event)
        except OSError as e:
            handle_file_exception(self.config_path, FileType.CONFIGURATION, e, log_prefix())
            return None

    def _invalidate(self) -> None:
        with self._state_lock:
            self._generation += 1
            self._document = None

    def _on_file_event(self, event: WatchEvent, filename: Optional[str]) -> None:
        if event != "change" or not filename or not filename.strip():
            return
        self._invalidate()
        logger.info("%s Configuration file changed. path=%s", log_prefix(), self.config_path)
        if self._on_reload is not None:
            self._schedule_reload()

    def _config(self) -> Mapping[str, Any]:
        document = self.get_document()
        return document if document is not None else {}

    @staticmethod
    def _section(config: Mapping[str, Any], name: str) -> Optional[Mapping[str, Any]]:
        section = config.get(name)
        return section if isinstance(section, Mapping) else None

    # -------------------- Reload callback --------------------

    def set_configuration_change_callback(
        self,
        callback: ReloadCallback,
        *,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        """
        Register the coroutine function run after each configuration file change.

        The callback runs on `loop`, or on the loop running at registration time. Without
        either it runs in a short-lived background thread. Replaces any earlier callback.
        """
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                loop = None
        with self._reload_lock:
            self._on_reload = callback
            self._reload_loop = loop

    def _schedule_reload(self) -> None:
        with self._reload_lock:
            if self._reload_running:
                self._reload_pending = True
                return
            self._reload_running = True
            loop = self._reload_loop
        if loop is not None:
            # A stopped loop would accept the handle and never run it.
            if loop.is_running() and not loop.is_closed():
                try:
                    loop.call_soon_threadsafe(self._start_reload_task, loop)
                    return
                except RuntimeError:
                    pass
            logger.warning("%s Reload event loop is not running, running callback in a thread.", log_prefix())
        threading.Thread(target=self._run_reloads, name="configuration-reload", daemon=True).start()

    def _start_reload_task(self, loop: asyncio.AbstractEventLoop) -> None:
        task = loop.create_task(self._drain_reloads())
        task.add_done_callback(_raise_reload_task_error)

    def _run_reloads(self) -> None:
        asyncio.run(self._drain_reloads())

    async def _drain_reloads(self) -> None:
        try:
            while True:
                with self._reload_lock:
                    self._reload_pending = False
                await self._invoke_reload_callback()
                with self._reload_lock:
                    if not self._reload_pending:
                        self._reload_running = False
                        return
        except BaseException:
            with self._reload_lock:
                self._reload_running = False
            raise

    async def _invoke_reload_callback(self) -> None:
        callback = self._on_reload
        if callback is None:
            return
        try:
            outcome = callback()
            if not inspect.isawaitable(outcome):
                raise ReloadCallbackError(
                    f"Configuration change callback returned {type(outcome).__name__}, expected an awaitable"
                )
            await outcome
        except ReloadCallbackError:
            raise
        except Exception as e:
            raise ReloadCallbackError(f"Configuration change callback failed: {e}") from e

    # -------------------- Section accessors --------------------

    def get_log_statistics_interval(self) -> Optional[int]:
        config = self._config()
        warn_deprecated_configuration_key(
            config, "statisticsDisplayInterval", guidance="Use 'logStatisticsInterval' instead"
        )
        if "logStatisticsInterval" in config:
            return config["logStatisticsInterval"]
        return DEFAULT_LOG_STATISTICS_INTERVAL

    def get_ui_server(self) -> UIServerConfiguration:
        config = self._config()
        warn_deprecated_configuration_section(config, "uiWebSocketServer", "uiServer")

        ui_server = section_defaults(UIServerConfiguration)
        section = self._section(config, "uiServer")
        if section is not None:
            deep_merge_dicts(ui_server, section)

        options = ui_server.pop("options", None)
        if not isinstance(options, Mapping):
            options = section_defaults(UIServerOptions)
        options = dict(options)
        if self._is_cloud_environment(self._env):
            # The platform dictates the bind address and port.
            options["host"] = None
            options["port"] = platform_port(self._env)

        ui_server["options"] = construct_section(UIServerOptions, options)
        return construct_section(UIServerConfiguration, ui_server)

    def get_performance_storage(self) -> StorageConfiguration:
        config = self._config()
        warn_deprecated_configuration_key(config, "URI", "performanceStorage", "Use 'uri' instead")

        storage = section_defaults(StorageConfiguration)
        storage["uri"] = self.get_default_performance_storage_uri(StorageType.JSON_FILE)
        section = self._section(config, "performanceStorage")
        if section is not None:
            storage = shallow_merge_dicts(storage, section)
            if storage.get("type") == StorageType.JSON_FILE and section.get("uri"):
                storage["uri"] = self._build_performance_uri_file_path(urlparse(str(section["uri"])).path)
        return construct_section(StorageConfiguration, storage)

    def get_default_performance_storage_uri(self, storage_type: Union[StorageType, str]) -> str:
        if storage_type == StorageType.JSON_FILE:
            return self._build_performance_uri_file_path(DEFAULT_PERFORMANCE_RECORDS_FILENAME)
        if storage_type == StorageType.SQLITE:
            return self._build_performance_uri_file_path(f"{DEFAULT_PERFORMANCE_RECORDS_DB_NAME}.db")
        raise ValueError(f"Performance storage URI is mandatory with storage type '{_enum_value(storage_type)}'")

    def _build_performance_uri_file_path(self, file: str) -> str:
        # Absolute paths from user URIs are re-rooted under the data directory; ".." stops at it.
        relative = posixpath.normpath("/" + file.lstrip("/")).lstrip("/")
        joined = os.path.normpath(os.path.join(str(self.data_dir), relative))
        return f"file://{Path(joined).as_posix()}"

    def get_auto_reconnect_max_retries(self) -> Optional[int]:
        config = self._config()
        warn_deprecated_configuration_key(config, "autoReconnectTimeout", guidance=_RECONNECT_GUIDANCE)
        warn_deprecated_configuration_key(config, "connectionTimeout", guidance=_RECONNECT_GUIDANCE)
        warn_deprecated_configuration_key(
            config, "autoReconnectMaxRetries", guidance="Use it in charging station template instead"
        )
        return config.get("autoReconnectMaxRetries")

    def get_station_template_urls(self) -> Optional[list[StationTemplateUrl]]:
        config = self._config()
        warn_deprecated_configuration_key(
            config, "stationTemplateURLs", guidance="Use 'stationTemplateUrls' instead"
        )
        template_urls = config.get("stationTemplateUrls")
        if not isinstance(template_urls, list):
            return None
        result: list[StationTemplateUrl] = []
        for entry in template_urls:
            if not isinstance(entry, Mapping):
                continue
            if "numberOfStation" in entry:
                logger.warning(
                    "%s Deprecated configuration key 'numberOfStation' usage for template file '%s' "
                    "in 'stationTemplateUrls'. Use 'numberOfStations' instead",
                    log_prefix(),
                    entry.get("file"),
                )
            result.append(construct_section(StationTemplateUrl, copy.deepcopy(dict(entry))))
        return result

    def get_worker(self) -> WorkerConfiguration:
        config = self._config()
        for legacy_key, _, purpose in _LEGACY_WORKER_KEYS:
            warn_deprecated_configuration_key(
                config, legacy_key, guidance=f"Use 'worker' section to {purpose} instead"
            )

        worker = section_defaults(WorkerConfiguration)
        for legacy_key, field_key, _ in _LEGACY_WORKER_KEYS:
            if field_key is not None and legacy_key in config:
                worker[field_key] = copy.deepcopy(config[legacy_key])
        section = self._section(config, "worker")
        if section is not None:
            worker = shallow_merge_dicts(worker, section)
        return construct_section(WorkerConfiguration, worker)

    def worker_pool_in_use(self) -> bool:
        return self.get_worker().process_type in (
            WorkerProcessType.STATIC_POOL.value,
            WorkerProcessType.DYNAMIC_POOL.value,
        )

    def worker_dynamic_pool_in_use(self) -> bool:
        return self.get_worker().process_type == WorkerProcessType.DYNAMIC_POOL.value

    def get_log_console(self) -> bool:
        config = self._config()
        warn_deprecated_configuration_key(config, "consoleLog", guidance="Use 'logConsole' instead")
        return config["logConsole"] if "logConsole" in config else False

    def get_log_format(self) -> str:
        config = self._config()
        return config["logFormat"] if "logFormat" in config else DEFAULT_LOG_FORMAT

    def get_log_rotate(self) -> bool:
        config = self._config()
        return config["logRotate"] if "logRotate" in config else True

    def get_log_max_files(self) -> Union[int, str, bool, None]:
        config = self._config()
        return config["logMaxFiles"] if "logMaxFiles" in config else False

    def get_log_max_size(self) -> Union[int, str, bool, None]:
        config = self._config()
        return config["logMaxSize"] if "logMaxSize" in config else False

    def get_log_level(self) -> str:
        config = self._config()
        level = config.get("logLevel")
        if isinstance(level, str):
            return level.lower()
        return DEFAULT_LOG_LEVEL

    def get_log_file(self) -> str:
        config = self._config()
        return config["logFile"] if "logFile" in config else DEFAULT_LOG_FILE

    def get_log_error_file(self) -> str:
        config = self._config()
        warn_deprecated_configuration_key(config, "errorFile", guidance="Use 'logErrorFile' instead")
        return config["logErrorFile"] if "logErrorFile" in config else DEFAULT_LOG_ERROR_FILE

    def get_logging(self) -> LoggingConfiguration:
        return LoggingConfiguration.model_construct(
            console=self.get_log_console(),
            format=self.get_log_format(),
            rotate=self.get_log_rotate(),
            max_files=self.get_log_max_files(),
            max_size=self.get_log_max_size(),
            level=self.get_log_level(),
            file=self.get_log_file(),
            error_file=self.get_log_error_file(),
        )

    def get_supervision_urls(self) -> Union[str, list[str], None]:
        config = self._config()
        warn_deprecated_configuration_key(config, "supervisionURLs", guidance="Use 'supervisionUrls' instead")
        return copy.deepcopy(config.get("supervisionUrls"))

    def get_supervision_url_distribution(self) -> str:
        config = self._config()
        warn_deprecated_configuration_key(
            config, "distributeStationToTenantEqually", guidance="Use 'supervisionUrlDistribution' instead"
        )
        warn_deprecated_configuration_key(
            config, "distributeStationsToTenantsEqually", guidance="Use 'supervisionUrlDistribution' instead"
        )
        if "supervisionUrlDistribution" in config:
            return config["supervisionUrlDistribution"]
        return SupervisionUrlDistribution.ROUND_ROBIN.value
