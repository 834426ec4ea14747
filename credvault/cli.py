"""
credvault command line

Usage:
    credvault backends                       # List available backends
    credvault list                           # List stored secrets
    credvault copy file onepassword          # Copy everything between backends
    credvault --backend onepassword list     # Use another backend
    credvault --debug copy file onepassword  # Show progress logging
"""

import argparse
import getpass
import logging
import os
import sys
from typing import Dict, List, Optional

from . import __version__
from .access_control import ACCESS_CONSTRAINT_OPTIONS, DEFAULT_ACCESS_CONTROL
from .config import (
    DEFAULT_CONFIG_PATH,
    ENV_ACCESS_CONSTRAINT,
    ENV_ACCESS_CONTROL,
    ENV_BACKEND,
    ENV_CONFIG,
    ENV_FILE_DIR,
    ENV_FILE_PASSPHRASE,
    ENV_OP_TOKEN_ENV,
    ENV_OP_VAULT,
    SERVICE_NAME,
    GlobalConfig,
    load_backend_config,
)
from .copier import COPY_ORDER, copy_secrets
from .errors import CopyError, CredVaultError
from .secrets import KeyringManager, adapter_supports_access_control, available_backends, namespaced

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(debug: bool) -> None:
    """Show everything with --debug, otherwise warnings and errors only."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format=LOG_FORMAT,
    )


def file_passphrase_prompt(prompt: str) -> str:
    """Passphrase for the file backend, from the environment or the terminal."""
    password = os.environ.get(ENV_FILE_PASSPHRASE)
    if password is not None:
        return password
    return getpass.getpass(f"{prompt}: ")


# =============================================================================
# COMMANDS
# =============================================================================

def copy_command(args, config: GlobalConfig) -> int:
    manager = KeyringManager(config.backends)
    try:
        source = manager.open(args.source, config.backend_config(args.source))
        destination = manager.open(args.destination, config.backend_config(args.destination))

        print(f"Copying credentials from {args.source} to {args.destination}")

        try:
            result = copy_secrets(source, destination, log=logger)
        except CopyError as e:
            print(f"❌ Copy: {e}", file=sys.stderr)
            if e.result is not None and e.result.total:
                print(f"   {e.result.total} item(s) were copied before the failure", file=sys.stderr)
            return 1
    finally:
        manager.close()

    print(result.summary())
    return 0


def list_command(args, config: GlobalConfig) -> int:
    manager = KeyringManager(config.backends)
    try:
        keyring = manager.open(config.backend, config.backend_config(config.backend))

        for namespace in COPY_ORDER:
            names = namespaced(keyring, namespace).keys()
            print(f"{namespace.plural.capitalize()}:")
            if not names:
                print("  (none)")
            for name in names:
                print(f"  {name}")
    finally:
        manager.close()
    return 0


def backends_command(args, config: GlobalConfig) -> int:
    for name in available_backends(config.backends):
        adapter = config.adapter(name)
        notes = [] if adapter == name else [adapter]
        if name == config.backend:
            notes.append("selected")
        if adapter_supports_access_control(adapter):
            notes.append("access control")
        suffix = f" ({', '.join(notes)})" if notes else ""
        print(f"{name}{suffix}")
    return 0


# =============================================================================
# PARSER
# =============================================================================

def _bootstrap_args(argv: Optional[List[str]]) -> argparse.Namespace:
    """Pick out --debug and --config, needed before the full parser exists."""
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("--debug", action="store_true")
    parser.add_argument("--config", default=os.environ.get(ENV_CONFIG, DEFAULT_CONFIG_PATH))
    args, _ = parser.parse_known_args(argv)
    return args


def build_parser(backends_config: Optional[Dict[str, Dict]] = None) -> argparse.ArgumentParser:
    backends = available_backends(backends_config)

    parser = argparse.ArgumentParser(
        prog=SERVICE_NAME,
        description="Securely store and move credentials between keyring backends",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Environment:
  {ENV_BACKEND}, {ENV_CONFIG}, {ENV_FILE_DIR}, {ENV_FILE_PASSPHRASE},
  {ENV_OP_VAULT}, {ENV_OP_TOKEN_ENV}, {ENV_ACCESS_CONTROL}, {ENV_ACCESS_CONSTRAINT}
"""
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Show debugging output"
    )
    parser.add_argument(
        "--backend",
        default=os.environ.get(ENV_BACKEND, backends[0]),
        choices=backends,
        help=f"Secret backend to use {backends}"
    )
    parser.add_argument(
        "--config",
        default=os.environ.get(ENV_CONFIG, DEFAULT_CONFIG_PATH),
        help="JSON file defining backends and their options"
    )
    parser.add_argument(
        "--file-dir",
        default=os.environ.get(ENV_FILE_DIR),
        help="Directory for the \"file\" backend (default: ~/.credvault/keys/)"
    )
    parser.add_argument(
        "--op-vault",
        default=os.environ.get(ENV_OP_VAULT),
        help="1Password vault for the \"onepassword\" backend"
    )
    parser.add_argument(
        "--op-token-env",
        default=os.environ.get(ENV_OP_TOKEN_ENV),
        help="Environment variable holding the 1Password service account token"
    )
    parser.add_argument(
        "--access-control",
        default=os.environ.get(ENV_ACCESS_CONTROL, DEFAULT_ACCESS_CONTROL),
        help="Access control terms joined by And/Or, e.g. UserPresenceAndBiometryAnySet"
    )
    parser.add_argument(
        "--access-constraint",
        default=os.environ.get(ENV_ACCESS_CONSTRAINT, ""),
        choices=ACCESS_CONSTRAINT_OPTIONS,
        help="Keychain accessibility constraint"
    )

    subparsers = parser.add_subparsers(dest="command", metavar="command")

    copy_parser = subparsers.add_parser("copy", help="Copy credentials from one backend to another")
    copy_parser.add_argument("source", choices=backends, help="Name of the backend to move credentials from")
    copy_parser.add_argument("destination", choices=backends, help="Name of the backend to move credentials to")
    copy_parser.set_defaults(func=copy_command)

    list_parser = subparsers.add_parser("list", help="List stored credentials, OIDC tokens and sessions")
    list_parser.set_defaults(func=list_command)

    backends_parser = subparsers.add_parser("backends", help="List available backends")
    backends_parser.set_defaults(func=backends_command)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    bootstrap = _bootstrap_args(argv)
    configure_logging(bootstrap.debug)
    logger.debug(f"{SERVICE_NAME} {__version__}")

    backends_config = load_backend_config(bootstrap.config)["backends"]
    parser = build_parser(backends_config)
    args = parser.parse_args(argv)

    # Defaults taken from the environment skip argparse's choices check
    backends = available_backends(backends_config)
    if args.backend not in backends:
        parser.error(f"{ENV_BACKEND} must be one of {', '.join(backends)}, got '{args.backend}'")
    if args.access_constraint not in ACCESS_CONSTRAINT_OPTIONS:
        parser.error(f"{ENV_ACCESS_CONSTRAINT} is not a valid access constraint: '{args.access_constraint}'")

    config = GlobalConfig(
        backend=args.backend,
        debug=args.debug,
        config_path=args.config,
        file_dir=args.file_dir,
        op_vault=args.op_vault,
        op_token_env=args.op_token_env,
        access_control=args.access_control,
        access_constraint=args.access_constraint,
        password_func=file_passphrase_prompt,
        backends=backends_config,
    )

    try:
        config.validate()
    except CredVaultError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    if args.command is None:
        parser.print_help()
        return 0

    try:
        return args.func(args, config)
    except CredVaultError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
