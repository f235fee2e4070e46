"""Application settings loader from YAML configuration."""
import os
import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

from ledgerflow.utils.exceptions import ConfigError

DEFAULT_CONFIG_PATH = Path(__file__).parent / "settings.yaml"
CONFIG_ENV_VAR = "LEDGERFLOW_CONFIG"


def _default_selectors() -> Dict[str, List[Dict[str, Any]]]:
    return {
        "username": [
            {"selector": 'input[name="RUT"]', "timeout_ms": 2000},
            {"selector": 'input[id="rut"]', "timeout_ms": 2000},
            {"selector": 'input[aria-label="RUT"]', "timeout_ms": 2000},
        ],
        "password": [
            {"selector": 'input[name="Clave"]', "timeout_ms": 2000},
            {"selector": 'input[type="password"]', "timeout_ms": 2000},
            {"selector": 'input[aria-label="Clave"]', "timeout_ms": 2000},
        ],
        "submit": [
            {"selector": 'button[aria-label="Ingresar"]', "timeout_ms": 2000},
            {"selector": 'button[type="submit"]', "timeout_ms": 2000},
            {"selector": 'button:has-text("Ingresar")', "timeout_ms": 2000},
        ],
    }


def _default_launch_args() -> List[str]:
    return [
        "--disable-blink-features=AutomationControlled",
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-web-security",
        "--disable-features=IsolateOrigins,site-per-process",
    ]


@dataclass
class AppSettings:
    """Application-wide settings loaded from settings.yaml."""

    # App info
    app_name: str = "LedgerFlow"
    app_version: str = "1.0.0"

    # Logging
    log_level: str = "INFO"
    log_dir: Optional[str] = None
    log_max_file_size_mb: int = 10
    log_backup_count: int = 30

    # Browser / telemetry capture
    login_url: str = "https://banco.santander.cl/personas"
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    viewport_width: int = 1920
    viewport_height: int = 1080
    launch_args: List[str] = field(default_factory=_default_launch_args)
    telemetry_header: str = "akamai-bm-telemetry"
    entry_selector: str = 'a[aria-label="Ingresar al sitio privado"]'
    login_frame_selector: str = "#login-frame"
    login_frame_name: str = "login-frame"
    login_frame_url_hint: str = "login"
    navigation_timeout_ms: int = 90000
    entry_timeout_ms: int = 60000
    frame_timeout_ms: int = 20000
    frame_settle_ms: int = 3000
    field_pause_ms: int = 500
    typing_delay_ms: int = 100
    settle_after_submit_ms: int = 3000
    login_selectors: Dict[str, List[Dict[str, Any]]] = field(default_factory=_default_selectors)

    # Token endpoint
    token_url: str = (
        "https://apideveloper.santander.cl/sancl/privado/party_authentication_restricted/"
        "party_auth_dss/v1/oauth2/token"
    )
    token_scope: str = "Completa"
    token_referrer: str = "https://mibanco.santander.cl/"
    token_app: str = "007"
    token_canal: str = "003"
    token_nro_ser: str = ""

    # Ledger endpoint
    ledger_url: str = (
        "https://api-dsk.santander.cl/perdsk/datosCliente/mensajeriaPush/serviciosAlmacenamiento"
    )
    ledger_usuario_alt: str = "GHOBP"
    ledger_terminal_alt: str = ""
    ledger_canal_id: str = "078"
    ledger_canal_fisico: str = "003"
    ledger_canal_logico: str = "74"
    ledger_ip_cliente: str = ""
    ledger_info_dispositivo: str = "valor InfoDispositivo"
    ledger_ref_app: str = "santander_movil"
    ledger_ref_company: str = "SCHCL"
    ledger_default_limit: int = 25

    # HTTP
    http_timeout_seconds: float = 30
    fetch_max_retries: int = 0
    retry_initial_delay_seconds: float = 1
    retry_backoff_factor: float = 2

    # Pipeline / façade defaults
    max_concurrent_sessions: int = 2
    default_headless: bool = True
    default_verbose: bool = False
    default_limit: int = 50

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "AppSettings":
        """Load settings from YAML file; missing keys keep their defaults."""
        if config_path is None:
            env_path = os.getenv(CONFIG_ENV_VAR)
            config_path = Path(env_path) if env_path else DEFAULT_CONFIG_PATH

        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid configuration file {config_path}: {e}") from e

        if not isinstance(config, dict):
            raise ConfigError(f"Configuration root must be a mapping: {config_path}")

        return cls(**cls._flatten(config))

    @staticmethod
    def _flatten(config: Dict[str, Any]) -> Dict[str, Any]:
        """Map nested YAML sections onto flat dataclass field names."""
        app = config.get("app") or {}
        logging_cfg = config.get("logging") or {}
        browser = config.get("browser") or {}
        token = config.get("token") or {}
        ledger = config.get("ledger") or {}
        http = config.get("http") or {}
        pipeline = config.get("pipeline") or {}

        mapping = {
            "app_name": app.get("name"),
            "app_version": app.get("version"),
            "log_level": logging_cfg.get("level"),
            "log_dir": logging_cfg.get("log_dir"),
            "log_max_file_size_mb": logging_cfg.get("max_file_size_mb"),
            "log_backup_count": logging_cfg.get("backup_count"),
            "max_concurrent_sessions": pipeline.get("max_concurrent_sessions"),
            "default_headless": pipeline.get("headless"),
            "default_verbose": pipeline.get("verbose"),
            "default_limit": pipeline.get("limit"),
            "http_timeout_seconds": http.get("timeout_seconds"),
            "fetch_max_retries": http.get("fetch_max_retries"),
            "retry_initial_delay_seconds": http.get("retry_initial_delay_seconds"),
            "retry_backoff_factor": http.get("retry_backoff_factor"),
            "login_selectors": browser.get("selectors"),
            "ledger_default_limit": ledger.get("default_limit"),
        }

        for key in (
            "login_url", "user_agent", "viewport_width", "viewport_height", "launch_args",
            "telemetry_header", "entry_selector", "login_frame_selector", "login_frame_name",
            "login_frame_url_hint", "navigation_timeout_ms", "entry_timeout_ms",
            "frame_timeout_ms", "frame_settle_ms", "field_pause_ms", "typing_delay_ms",
            "settle_after_submit_ms",
        ):
            mapping[key] = browser.get(key)

        for key in ("url", "scope", "referrer", "app", "canal", "nro_ser"):
            mapping[f"token_{key}"] = token.get(key)

        for key in (
            "url", "usuario_alt", "terminal_alt", "canal_id", "canal_fisico", "canal_logico",
            "ip_cliente", "info_dispositivo", "ref_app", "ref_company",
        ):
            mapping[f"ledger_{key}"] = ledger.get(key)

        # log_dir is the only setting where an explicit null is meaningful
        flattened = {k: v for k, v in mapping.items() if v is not None}
        if "log_dir" in logging_cfg:
            flattened["log_dir"] = logging_cfg["log_dir"]
        return flattened


# Global settings instance
_settings: Optional[AppSettings] = None


def get_settings() -> AppSettings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = AppSettings.load()
    return _settings
