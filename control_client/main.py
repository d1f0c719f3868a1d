"""
Command-line entry point for the control client.

Runs a command on a remote machine, or reports when its agent was last seen.
"""
import argparse
import getpass
import os
import sys
from typing import Optional, Sequence

from control_client.communication import SessionLogClient
from control_client.config import ConfigManager
from control_client.core import CommandDispatcher, CommandOutcome, SystemClock, get_last_contact
from control_client.exceptions import ControlClientError
from control_client.models import Credential
from control_client.utils.logger import setup_logger, get_logger
from control_client.version import __app_name__, __version__

PASSWORD_ENV_VAR = "CONTROL_CLIENT_PASSWORD"

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NOT_FOUND = 2
EXIT_TIMED_OUT = 3

logger = get_logger("control_client.main")


def _load_config(args: argparse.Namespace) -> ConfigManager:
    overrides = {
        'server_url': args.server,
        'credentials': {'username': args.username},
    }
    config = ConfigManager(args.config, overrides=overrides)
    config.validate()
    return config


def _setup_logging(config: ConfigManager, verbose: bool):
    setup_logger(
        name="control_client",
        console_level_name='DEBUG' if verbose else config.get('logging.console_level', 'INFO'),
        file_level_name=config.get('logging.file_level', 'DEBUG'),
        log_file_path=config.get('logging.file_path'),
    )


def _resolve_credential(config: ConfigManager) -> Credential:
    """Password precedence: config file, environment variable, interactive prompt."""
    username = config.get('credentials.username')
    password = config.get('credentials.password') or os.environ.get(PASSWORD_ENV_VAR)
    if not password:
        password = getpass.getpass(f"Password for {username}: ")
    return Credential(username=username, password=password)


def _run_command(args: argparse.Namespace, config: ConfigManager, client: SessionLogClient) -> int:
    """Handles the 'run' CLI command."""
    dispatcher = CommandDispatcher.from_config(config, client)
    timeout_ms = args.timeout_ms if args.timeout_ms is not None else config.get('command.default_timeout_ms', 10000)
    result = dispatcher.run(args.guid, args.command_text, timeout_ms=timeout_ms, use_powershell=args.powershell)

    if result.outcome is CommandOutcome.NOT_FOUND:
        print(f"ERROR: Machine {args.guid} not found.", file=sys.stderr)
        return EXIT_NOT_FOUND
    if result.outcome is CommandOutcome.TIMED_OUT:
        print(f"ERROR: Command did not complete within {timeout_ms}ms.", file=sys.stderr)
        return EXIT_TIMED_OUT

    for line in result.output:
        print(line)
    return EXIT_OK


def _run_last_contact(args: argparse.Namespace, config: ConfigManager, client: SessionLogClient) -> int:
    """Handles the 'last-contact' CLI command."""
    session = client.fetch_session(args.guid)
    if session is None:
        print(f"ERROR: Machine {args.guid} not found.", file=sys.stderr)
        return EXIT_NOT_FOUND

    last_contact = get_last_contact(session, SystemClock())
    print(last_contact.isoformat(sep=' ', timespec='seconds') if last_contact else "never")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="control-client", description=f"{__app_name__} {__version__}")
    parser.add_argument('--config', help='Path to a JSON configuration file.')
    parser.add_argument('--server', help='Base URL of the service (overrides server_url).')
    parser.add_argument('--username', help='User name (overrides credentials.username).')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging.')
    subparsers = parser.add_subparsers(dest='subcommand', required=True)

    run_parser = subparsers.add_parser('run', help='Run a command on a remote machine and print its output.')
    run_parser.add_argument('guid', help='Session GUID of the machine.')
    run_parser.add_argument('command_text', metavar='command', help='Command to run.')
    run_parser.add_argument('--timeout-ms', type=int, help='Execution timeout in milliseconds.')
    run_parser.add_argument('--powershell', action='store_true', help='Run the command under PowerShell.')
    run_parser.set_defaults(func=_run_command)

    contact_parser = subparsers.add_parser('last-contact', help='Show when the machine last connected or disconnected.')
    contact_parser.add_argument('guid', help='Session GUID of the machine.')
    contact_parser.set_defaults(func=_run_last_contact)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Main function to parse arguments and dispatch commands.
    """
    args = build_parser().parse_args(argv)

    try:
        config = _load_config(args)
    except (FileNotFoundError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_ERROR

    _setup_logging(config, args.verbose)

    try:
        with SessionLogClient.from_config(config, _resolve_credential(config)) as client:
            return args.func(args, config, client)
    except ControlClientError as e:
        logger.error(f"{args.subcommand} failed: {e}")
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_ERROR
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == '__main__':
    sys.exit(main())
