"""
Clinic Reports Configuration

Every setting of the reports service lives in one UnifiedConfig object made of
dataclass sections: backend connection, clinic letterhead, printing, data
directories, logging and the web server. Each section starts from its
defaults, is overlaid with the matching block of .config.json and finally
with environment variables.

Copyright: © 2025 Falasifah Dental Clinic
"""

import os
import json
import logging
import logging.handlers
from dataclasses import dataclass, field, fields, asdict
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class Environment(Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"


class LogLevel(Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class BackendConfig:
    """Clinic backend the report data is pulled from"""
    server_url: str = "http://localhost:54321/functions/v1/make-server"
    access_token: Optional[str] = None  # Used only when a request carries no bearer token
    timeout_seconds: int = 30
    max_workers: int = 7  # One worker per report source


@dataclass
class ClinicConfig:
    """Letterhead printed on every document"""
    name: str = "Falasifah Dental Clinic"
    subtitle: str = "Klinik Gigi & Mulut Terpercaya"
    address_lines: List[str] = field(default_factory=lambda: [
        "Jl Raihan, Villa Rizki Ilhami 2 Ruko RA/19",
        "Sawangan Lama, Kec. Sawangan, Depok, Jawa Barat",
    ])
    phone: str = "085283228355"
    logo_url: Optional[str] = None


@dataclass
class PrintConfig:
    """Print window and preview behaviour"""
    print_delay_ms: int = 1000
    zoom_min: int = 50
    zoom_max: int = 150
    zoom_step: int = 10
    zoom_default: int = 100


@dataclass
class DirectoryConfig:
    """Where logs, rendered print files and the period state are kept"""
    data_dir: Path = field(default_factory=lambda: Path("data"))
    logs_dir: Path = field(default_factory=lambda: Path("data/logs"))
    output_dir: Path = field(default_factory=lambda: Path("data/output"))
    state_file: Path = field(default_factory=lambda: Path("data/report_period.json"))

    def ensure(self):
        """Create the directories if they are missing"""
        for path in (self.data_dir, self.logs_dir, self.output_dir, self.state_file.parent):
            path.mkdir(parents=True, exist_ok=True)


@dataclass
class LoggingConfig:
    level: LogLevel = LogLevel.INFO
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    date_format: str = "%Y-%m-%d %H:%M:%S"
    file_rotation_size: int = 10 * 1024 * 1024
    file_retention_count: int = 5
    enable_console: bool = True
    enable_file: bool = True


@dataclass
class WebConfig:
    """uvicorn and CORS settings"""
    host: str = "0.0.0.0"
    port: int = 8000
    reload: bool = False
    log_level: str = "info"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])


# Environment variables that override a section field
ENV_OVERRIDES: Dict[str, Dict[str, str]] = {
    'backend': {
        'server_url': 'CLINIC_SERVER_URL',
        'access_token': 'CLINIC_ACCESS_TOKEN',
        'timeout_seconds': 'CLINIC_BACKEND_TIMEOUT',
        'max_workers': 'CLINIC_MAX_WORKERS',
    },
    'clinic': {
        'name': 'CLINIC_NAME',
        'logo_url': 'CLINIC_LOGO_URL',
    },
    'printing': {
        'print_delay_ms': 'CLINIC_PRINT_DELAY_MS',
    },
    'directories': {
        'data_dir': 'CLINIC_DATA_DIR',
        'logs_dir': 'CLINIC_LOGS_DIR',
        'output_dir': 'CLINIC_OUTPUT_DIR',
        'state_file': 'CLINIC_STATE_FILE',
    },
    'logging': {
        'level': 'CLINIC_LOG_LEVEL',
        'format': 'CLINIC_LOG_FORMAT',
    },
    'web': {
        'host': 'WEB_HOST',
        'port': 'WEB_PORT',
        'log_level': 'WEB_LOG_LEVEL',
    },
}


def _coerce(value: Any, current: Any) -> Any:
    """Convert a JSON or environment value to the type of the field's default"""
    if isinstance(current, bool):
        if isinstance(value, str):
            return value.strip().lower() in ('1', 'true', 'yes', 'on')
        return bool(value)
    if isinstance(current, int):
        return int(value)
    if isinstance(current, Path):
        return Path(value)
    if isinstance(current, LogLevel):
        try:
            return LogLevel(str(value).upper())
        except ValueError:
            logger.warning(f"Unknown log level '{value}', using INFO")
            return LogLevel.INFO
    return value


class UnifiedConfig:
    """
    Process-wide configuration (singleton).

    Precedence, lowest first: dataclass defaults, .config.json, environment
    variables. Keys starting with '_' in the JSON file are documentation and
    are skipped. reload() rebuilds every section from scratch.
    """

    _instance: Optional['UnifiedConfig'] = None
    _initialized: bool = False
    _config_file = Path(".config.json")

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self.reload()
        self._initialized = True

    def reload(self):
        """Rebuild every section from defaults, the JSON file and the environment"""
        self._json_config = self._read_config_file()
        self.environment = self._resolve_environment()

        self.backend = self._build_section(BackendConfig, 'backend')
        self.backend.server_url = self.backend.server_url.rstrip('/')
        self.clinic = self._build_section(ClinicConfig, 'clinic')
        self.printing = self._build_section(PrintConfig, 'printing')
        self.directories = self._build_section(DirectoryConfig, 'directories')
        self.logging = self._build_section(LoggingConfig, 'logging')
        self.web = self._build_section(WebConfig, 'web')

        self._apply_environment_profile()

    def _read_config_file(self) -> Dict[str, Any]:
        path = self._config_file
        if not path.exists():
            logger.debug(f"No {path}, using defaults")
            return {}
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Ignoring unreadable {path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring {path}: top level is not an object")
            return {}
        logger.info(f"Configuration read from {path}")
        return data

    def section(self, name: str) -> Dict[str, Any]:
        """JSON values of one section, without documentation keys or nulls"""
        values = self._json_config.get(name)
        if not isinstance(values, dict):
            return {}
        return {k: v for k, v in values.items() if not k.startswith('_') and v is not None}

    def _resolve_environment(self) -> Environment:
        mode = os.getenv('CLINIC_ENVIRONMENT') or self.section('environment').get('mode') or 'development'
        try:
            return Environment(str(mode).lower())
        except ValueError:
            logger.warning(f"Unknown environment '{mode}', using development")
            return Environment.DEVELOPMENT

    def _build_section(self, section_cls, name: str):
        section = section_cls()
        values = self.section(name)
        if 'file_rotation_size_mb' in values:
            values['file_rotation_size'] = int(values.pop('file_rotation_size_mb')) * 1024 * 1024
        overrides = ENV_OVERRIDES.get(name, {})

        for f in fields(section):
            value = os.getenv(overrides[f.name]) if f.name in overrides else None
            if value is None:
                value = values.get(f.name)
            if value is not None:
                setattr(section, f.name, _coerce(value, getattr(section, f.name)))
        return section

    def _apply_environment_profile(self):
        if self.environment == Environment.DEVELOPMENT:
            self.logging.level = LogLevel.DEBUG
            self.web.reload = True
            self.web.log_level = "debug"
        elif self.environment == Environment.PRODUCTION:
            self.logging.level = LogLevel.INFO
            self.logging.enable_console = False
        elif self.environment == Environment.TESTING:
            self.logging.enable_file = False

    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view of the configuration; the access token is left out"""
        backend = asdict(self.backend)
        backend.pop('access_token')
        return {
            'environment': self.environment.value,
            'backend': backend,
            'clinic': asdict(self.clinic),
            'printing': asdict(self.printing),
            'directories': {k: str(v) for k, v in asdict(self.directories).items()},
            'web': asdict(self.web),
        }


config = UnifiedConfig()


def get_config() -> UnifiedConfig:
    return config


def setup_logging():
    """
    Configure the root logger from config.logging.

    Console output is dropped when disabled (production). The log file rolls
    over by size and is named clinic_reports_YYYYMMDD.log in the logs
    directory.
    """
    settings = config.logging
    handlers: List[logging.Handler] = []

    if settings.enable_console:
        handlers.append(logging.StreamHandler())
    if settings.enable_file:
        config.directories.logs_dir.mkdir(parents=True, exist_ok=True)
        log_file = config.directories.logs_dir / f"clinic_reports_{datetime.now():%Y%m%d}.log"
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=settings.file_rotation_size,
            backupCount=settings.file_retention_count,
            encoding='utf-8'
        ))

    logging.basicConfig(
        level=getattr(logging, settings.level.value),
        format=settings.format,
        datefmt=settings.date_format,
        handlers=handlers or [logging.NullHandler()],
        force=True
    )
