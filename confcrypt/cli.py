"""
Command-line interface for confcrypt.

This module orchestrates all other components and provides
the user-facing CLI commands:
- encrypt
- decrypt
- encrypt-file
- decrypt-file
- edit
- version
- help

Status messages go to stderr so that ``-o /dev/stdout`` output stays clean.
"""

from __future__ import annotations

import argparse
import getpass
import logging
import shlex
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import List, Optional

from .cipher import SimpleCipher, SymmetricCipher, new_cipher, normalize_strategy
from .config import (
    DEFAULT_LOG_LEVEL,
    DEFAULT_STRATEGY,
    ENV_PASSPHRASE,
    TOOL_VERSION,
    get_editor,
    load_passphrase,
    parse_log_level,
)
from .exceptions import ConfcryptError, ConfigError, PathResolutionError
from .formats import format_from_path, normalize_format
from .keyfile import get_secure_paths
from .transformer import EnvFile, decrypt_file, encrypt_file
from .utils import WriteMode, standard_stream, write_mode_for

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Color output helpers
# ---------------------------------------------------------------------------


class Colors:
    """ANSI color codes for terminal output."""
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    CYAN = "\033[96m"
    RESET = "\033[0m"
    BOLD = "\033[1m"


def colored(text: str, color: str) -> str:
    """Return colored text for terminal output."""
    return f"{color}{text}{Colors.RESET}"


def print_error(msg: str) -> None:
    """Print error message to stderr."""
    print(colored(f"✗ Error: {msg}", Colors.RED), file=sys.stderr)


def print_success(msg: str) -> None:
    """Print success message to stderr."""
    print(colored(f"✓ {msg}", Colors.GREEN), file=sys.stderr)


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


def configure_logging(level: int = logging.WARNING) -> None:
    # Keep stdout free for document output
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )
    logging.getLogger("confcrypt").setLevel(level)


# ---------------------------------------------------------------------------
# CLI context
# ---------------------------------------------------------------------------


class CLIContext:
    """Shared context for CLI commands."""

    def __init__(
        self,
        strategy: str,
        passphrase: Optional[str],
        quiet: bool,
    ):
        self.strategy = strategy
        self.passphrase = passphrase
        self.quiet = quiet

        # Lazy-loaded
        self._cipher: Optional[SimpleCipher] = None

    def read_passphrase(self) -> bytes:
        """
        Flag first, then the environment, then an interactive prompt.
        """
        if self.passphrase:
            return self.passphrase.encode("utf-8")

        from_env = load_passphrase()
        if from_env:
            return from_env

        if not sys.stdin.isatty():
            raise ConfigError(
                f"No passphrase given; use --unsafe-passphrase or set {ENV_PASSPHRASE}"
            )
        return getpass.getpass("Passphrase: ", stream=sys.stderr).encode("utf-8")

    @property
    def cipher(self) -> SimpleCipher:
        """Create the cipher lazily, prompting for a passphrase if needed."""
        if self._cipher is None:
            # Reject the strategy before prompting
            normalize_strategy(self.strategy)
            self._cipher = new_cipher(self.strategy, self.read_passphrase())
        return self._cipher

    def log(self, msg: str) -> None:
        """Log message if not quiet."""
        if not self.quiet:
            print(msg, file=sys.stderr)

    def success(self, msg: str) -> None:
        if not self.quiet:
            print_success(msg)


# ---------------------------------------------------------------------------
# Command implementations
# ---------------------------------------------------------------------------


def _input_format(args: argparse.Namespace) -> str:
    if args.format:
        return normalize_format(args.format)
    return format_from_path(args.in_path)


def _transform(ctx: CLIContext, args: argparse.Namespace, decrypt: bool) -> int:
    secure_paths = get_secure_paths(args.key, args.key_file)
    fmt = _input_format(args)

    env_file = EnvFile.from_path(args.in_path, ctx.cipher, secure_paths, fmt=fmt)
    mode = write_mode_for(args.in_path, args.out_path)
    env_file.export_file(args.out_path, fmt, mode=mode, decrypt=decrypt)

    if standard_stream(args.out_path) is None:
        verb = "Decrypted" if decrypt else "Encrypted"
        ctx.success(f"{verb} {len(secure_paths)} value(s): {args.in_path} → {args.out_path}")
    return 0


def cmd_encrypt(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Encrypt the values at the given secure paths.
    """
    return _transform(ctx, args, decrypt=False)


def cmd_decrypt(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Decrypt the values at the given secure paths.
    """
    ctx.log(colored("⚠️  WARNING: output contains plaintext secrets", Colors.YELLOW))
    return _transform(ctx, args, decrypt=True)


def _file_cipher(ctx: CLIContext) -> SymmetricCipher:
    cipher = ctx.cipher
    if not isinstance(cipher, SymmetricCipher):
        raise ConfigError("Whole-file encryption requires the symmetric strategy")
    return cipher


def cmd_encrypt_file(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Encrypt an entire file into one envelope.
    """
    encrypt_file(_file_cipher(ctx), args.in_path, args.out_path, write_mode_for(args.in_path, args.out_path))
    if standard_stream(args.out_path) is None:
        ctx.success(f"Encrypted {args.in_path} → {args.out_path}")
    return 0


def cmd_decrypt_file(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Decrypt a file produced by encrypt-file.
    """
    decrypt_file(_file_cipher(ctx), args.in_path, args.out_path, write_mode_for(args.in_path, args.out_path))
    if standard_stream(args.out_path) is None:
        ctx.success(f"Decrypted {args.in_path} → {args.out_path}")
    return 0


def cmd_edit(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Open the decrypted file in an editor and re-encrypt it on save.
    """
    path = Path(args.in_path)
    secure_paths = get_secure_paths(args.key, args.key_file)
    fmt = _input_format(args)

    env_file = EnvFile.from_path(path, ctx.cipher, secure_paths, fmt=fmt)
    plaintext = env_file.export(fmt, decrypt=True)

    with tempfile.TemporaryDirectory(prefix="confcrypt-") as tmp:
        # Same file name so editors pick the right syntax mode
        tmp_path = Path(tmp) / path.name
        tmp_path.touch(mode=0o600)
        tmp_path.write_bytes(plaintext)

        command = shlex.split(get_editor()) + [str(tmp_path)]
        logger.debug("Running editor: %s", command[0])
        try:
            subprocess.run(command, check=True)
        except subprocess.CalledProcessError as e:
            print_error(f"Editor exited with status {e.returncode}; {path} left unchanged")
            return 1

        edited = EnvFile.from_path(tmp_path, ctx.cipher, secure_paths, fmt=fmt)
        edited.export_file(path, fmt, mode=WriteMode.TRUNCATE)

    ctx.success(f"Saved {path}")
    return 0


def cmd_version(ctx: Optional[CLIContext], args: argparse.Namespace) -> int:
    print(TOOL_VERSION)
    return 0


def cmd_help(ctx: Optional[CLIContext], args: argparse.Namespace) -> int:
    """
    Show help message.
    """
    help_text = f"""
{colored('confcrypt', Colors.BOLD)} — encrypt secrets inside config files

{colored('USAGE:', Colors.CYAN)}
  confcrypt <command> [options]

{colored('DESCRIPTION:', Colors.CYAN)}
  confcrypt encrypts selected values of JSON, YAML and dotenv files and
  leaves the rest of the file readable, so the file can be committed.

{colored('COMMANDS:', Colors.CYAN)}
  encrypt, enc      Encrypt values at the given key paths
  decrypt, dec      Decrypt values at the given key paths
  encrypt-file      Encrypt a whole file into a single envelope
  decrypt-file      Decrypt a file written by encrypt-file
  edit              Decrypt into an editor and re-encrypt on save
  version           Print the version
  help              Show this help message

{colored('OPTIONS:', Colors.CYAN)}
  -i, --in PATH             Input file
  -o, --out PATH            Output file (/dev/stdout to print; same as
                            --in to overwrite in place)
  -f, --format NAME         json, yaml or dotenv (default: from extension)
  -k, --key PATH            Secure path, e.g. db.password or items[0].token
                            (repeatable)
  --key-file PATH           File with one secure path per line
  -s, --strategy NAME       Cipher strategy (default: symmetric)
  --unsafe-passphrase TEXT  Passphrase on the command line
  --log-level LEVEL         none, info or debug
  -q, --quiet               Suppress status messages

{colored('ENVIRONMENT:', Colors.CYAN)}
  {ENV_PASSPHRASE:<24}  Passphrase used when --unsafe-passphrase is not set
  VISUAL, EDITOR            Editor used by 'edit' (default: vi)

{colored('EXAMPLES:', Colors.CYAN)}
  confcrypt encrypt -i config.json -o config.json -k db.password
  confcrypt decrypt -i .env -o /dev/stdout -k API_KEY
  confcrypt edit -i config.yml --key-file secure-keys.txt

{colored('VERSION:', Colors.CYAN)}
  {TOOL_VERSION}
"""
    print(help_text)
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="confcrypt",
        description="Encrypt secrets inside config files",
        add_help=False,
    )
    parser.add_argument(
        "-h", "--help",
        action="store_true",
        help="Show help message",
    )

    # Options shared by every command that touches a cipher
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-s", "--strategy", default=DEFAULT_STRATEGY, help="Encryption/decryption type (symmetric, asymmetric, or keyring)")
    common.add_argument("--unsafe-passphrase", default=None, help="Unsafely pass the passphrase for symmetric encryption")
    common.add_argument("--log-level", default=DEFAULT_LOG_LEVEL, help="Increase logging verbosity (none, info, debug)")
    common.add_argument("-q", "--quiet", action="store_true", help="Suppress status messages")

    io_args = argparse.ArgumentParser(add_help=False)
    io_args.add_argument("-i", "--in", dest="in_path", required=True, help="Path to the input file")
    io_args.add_argument("-o", "--out", dest="out_path", required=True, help="Path to the output file")

    key_args = argparse.ArgumentParser(add_help=False)
    key_args.add_argument("-f", "--format", default=None, help="Format of the input and output files (json, yaml, dotenv)")
    key_args.add_argument("-k", "--key", action="append", default=None, help="Target key path to find secure value")
    key_args.add_argument("--key-file", default=None, help="Load list of keys from a NL-delimited file")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    subparsers.add_parser("encrypt", aliases=["enc"], parents=[common, io_args, key_args], help="Encrypt values in a given file")
    subparsers.add_parser("decrypt", aliases=["dec"], parents=[common, io_args, key_args], help="Decrypt values in a given file")
    subparsers.add_parser("encrypt-file", parents=[common, io_args], help="Encrypt an entire file")
    subparsers.add_parser("decrypt-file", parents=[common, io_args], help="Decrypt an entire file")

    edit_parser = subparsers.add_parser("edit", parents=[common, key_args], help="Edit secure values in an editor")
    edit_parser.add_argument("-i", "--in", dest="in_path", required=True, help="Path to the file to edit")

    subparsers.add_parser("version", help="Print the version")
    subparsers.add_parser("help", help="Show help message")

    return parser


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


COMMANDS = {
    "encrypt": cmd_encrypt,
    "enc": cmd_encrypt,
    "decrypt": cmd_decrypt,
    "dec": cmd_decrypt,
    "encrypt-file": cmd_encrypt_file,
    "decrypt-file": cmd_decrypt_file,
    "edit": cmd_edit,
    "version": cmd_version,
    "help": cmd_help,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Show help if requested or no command
    if args.help or not args.command:
        return cmd_help(None, args)

    if args.command in ("version", "help"):
        return COMMANDS[args.command](None, args)

    try:
        configure_logging(parse_log_level(args.log_level))
    except ConfigError as e:
        print_error(str(e))
        return 1

    ctx = CLIContext(
        strategy=args.strategy,
        passphrase=args.unsafe_passphrase,
        quiet=args.quiet,
    )

    try:
        return COMMANDS[args.command](ctx, args)
    except KeyboardInterrupt:
        print_error("Interrupted")
        return 130
    except PathResolutionError as e:
        for message in e.errors:
            print_error(message)
        return 1
    except (ConfcryptError, OSError) as e:
        print_error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
