"""Command-line entry point."""
import sys
import json
import getpass
import argparse
from pathlib import Path
from typing import Any, Dict

from ledgerflow.api.service import LedgerService
from ledgerflow.config.settings import AppSettings
from ledgerflow.utils.exceptions import ConfigError
from ledgerflow.utils.logger import configure_logging, get_logger

logger = get_logger()


def _load_settings(config_path: str = None) -> AppSettings:
    """Load settings, exiting on configuration errors."""
    try:
        settings = AppSettings.load(Path(config_path) if config_path else None)
    except ConfigError as e:
        logger.critical(f"Invalid configuration: {e}")
        sys.exit(1)

    configure_logging(
        settings.log_level,
        settings.log_dir,
        settings.log_max_file_size_mb,
        settings.log_backup_count
    )
    return settings


def _request_body(args: argparse.Namespace) -> Dict[str, Any]:
    """Build a façade request body from command-line arguments."""
    password = args.password
    if args.username and not password:
        password = getpass.getpass("Password: ")

    body: Dict[str, Any] = {
        "username": args.username,
        "password": password,
        "clientId": args.client_id,
        "apiClientId": args.api_client_id,
        "headless": not args.headed,
        "verbose": args.verbose,
    }
    if args.limit is not None:
        body["limit"] = args.limit
    if args.deadline is not None:
        body["deadlineSeconds"] = args.deadline
    return body


def serve_command(settings: AppSettings, host: str, port: int) -> None:
    """Run the HTTP façade."""
    import uvicorn
    from ledgerflow.api.server import create_app

    logger.info(f"{settings.app_name} server starting on http://{host}:{port}")
    logger.info(
        f"Defaults: headless={settings.default_headless}, verbose={settings.default_verbose}, "
        f"limit={settings.default_limit}"
    )
    uvicorn.run(create_app(settings), host=host, port=port)


def main():
    """Main entry point for LedgerFlow."""
    parser = argparse.ArgumentParser(description="LedgerFlow transaction history extraction")
    parser.add_argument(
        "command",
        choices=["movements", "totals", "full", "serve"],
        help="Command to execute"
    )
    parser.add_argument("--config", help="Path to settings YAML file")
    parser.add_argument("--username", help="Login identifier (also used as account identifier)")
    parser.add_argument("--password", help="Login secret (prompted when omitted)")
    parser.add_argument("--client-id", help="Client identifier for the token endpoint")
    parser.add_argument("--api-client-id", help="Client identifier for the ledger endpoint")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--verbose", action="store_true", help="Log pipeline progress")
    parser.add_argument("--limit", type=int, help="Maximum number of records to fetch")
    parser.add_argument("--deadline", type=float, help="End-to-end deadline in seconds")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address for serve")
    parser.add_argument("--port", type=int, default=3000, help="Port for serve")

    args = parser.parse_args()
    settings = _load_settings(args.config)

    if args.command == "serve":
        serve_command(settings, args.host, args.port)
        return

    service = LedgerService(settings)
    operations = {
        "movements": service.get_movements,
        "totals": service.get_totals,
        "full": service.get_everything,
    }

    try:
        status, payload = operations[args.command](_request_body(args))
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
        sys.exit(130)

    print(json.dumps(payload, indent=2, ensure_ascii=False))
    sys.exit(0 if status == 200 else 1)


if __name__ == "__main__":
    main()
