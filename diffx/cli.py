"""
DiffX CLI - Command-line interface for DiffX files.

Commands:
  diffx inspect  - Show the section tree of a DiffX file
  diffx read     - Print one section's payload (dotted title path)
  diffx validate - Parse a file and report the first error, if any
  diffx convert  - Convert to JSON/TXT, or from JSON
  diffx encrypt  - Encrypt a DiffX file with AES-256-GCM
  diffx decrypt  - Decrypt an encrypted DiffX file
  diffx sign     - Sign a DiffX file with HMAC-SHA256
  diffx verify   - Verify the HMAC-SHA256 signature of a DiffX file
  diffx identify - Quick check if a file is DiffX
  diffx view     - Browse a DiffX file in the terminal (TUI)
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from diffx.errors import DiffXParseError
from diffx.spec import MAX_FILE_SIZE

logger = logging.getLogger(__name__)


def _max_size() -> int:
    """Reader size limit, overridable with DIFFX_MAX_FILE_SIZE."""
    raw = os.environ.get("DIFFX_MAX_FILE_SIZE", "")
    if raw.isdigit():
        return int(raw)
    return MAX_FILE_SIZE


def _load(path: str, strict: bool = False):
    """Read and parse a file, exiting with a one-line error on failure."""
    from diffx.reader import DiffXReader

    try:
        return DiffXReader.read(path, max_size=_max_size(), strict=strict)
    except FileNotFoundError:
        print(f"Error: File not found: {path}", file=sys.stderr)
        sys.exit(1)
    except DiffXParseError as e:
        print(f"Error: {path}: {e}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _check_output(output: str) -> None:
    if ".." in Path(output).parts:
        print("Error: Output path must not contain '..' (path traversal)", file=sys.stderr)
        sys.exit(1)


def cmd_inspect(args: argparse.Namespace) -> None:
    """Show the version, root options and section tree."""
    from diffx.converters import to_txt

    doc = _load(args.path)
    print(f"DiffX v{doc.version or '?'} ({doc.encoding.value})")
    print()
    print("SECTIONS:")
    for line in to_txt(doc).splitlines():
        print(f"  {line}")
    if doc.remainder:
        print()
        print(f"TRAILING: {len(doc.remainder)} bytes after root section")


def cmd_read(args: argparse.Namespace) -> None:
    """Print the payload of one section."""
    doc = _load(args.path)
    section = doc.get(args.section)
    if section is None:
        print(f"Section '{args.section}' not found.", file=sys.stderr)
        available = [path for path, _, s in doc.walk() if path]
        print(f"Available: {', '.join(available)}", file=sys.stderr)
        sys.exit(1)
    if section.text is not None:
        print(section.text, end="")
    elif section.data is not None:
        sys.stdout.buffer.write(section.data)
        sys.stdout.buffer.flush()
    else:
        print(f"Section '{args.section}' has child sections: "
              f"{', '.join(section.children)}", file=sys.stderr)
        sys.exit(1)


def cmd_validate(args: argparse.Namespace) -> None:
    """Validate a DiffX file."""
    from diffx.reader import DiffXReader

    path = args.path
    try:
        doc = DiffXReader.read(path, max_size=_max_size(), strict=args.strict)
    except FileNotFoundError:
        print(f"FAIL: {path} not found")
        sys.exit(1)
    except DiffXParseError as e:
        print(f"FAIL: {e.kind.value} at offset {e.offset}: {e.message}")
        sys.exit(1)
    except ValueError as e:
        print(f"FAIL: {e}")
        sys.exit(1)

    count = sum(1 for _ in doc.walk())
    print(f"OK: {path} is valid DiffX (version {doc.version or 'unset'}, {count} sections)")


def cmd_convert(args: argparse.Namespace) -> None:
    """Convert to/from DiffX."""
    from diffx.converters import convert_from, convert_to

    if args.direction == "to":
        doc = _load(args.input)
        result = convert_to(doc, args.format)
        if args.output:
            _check_output(args.output)
            Path(args.output).write_text(result, encoding="utf-8")
            print(f"Converted {args.input} -> {args.output}")
        else:
            print(result, end="")
        return

    input_path = Path(args.input)
    if not input_path.is_file():
        print(f"Error: File not found: {args.input}", file=sys.stderr)
        sys.exit(1)
    try:
        doc = convert_from(input_path.read_text(encoding="utf-8"), args.format)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    output = args.output or input_path.stem + ".diffx"
    _check_output(output)
    nbytes = doc.write(output)
    print(f"Converted {args.input} -> {output} ({nbytes} bytes)")


def _secret(args: argparse.Namespace) -> str:
    secret = args.secret or os.environ.get("DIFFX_SIGN_SECRET", "")
    if not secret:
        import getpass
        secret = getpass.getpass("Secret: ")
    if not secret:
        print("Error: Secret cannot be empty", file=sys.stderr)
        sys.exit(1)
    return secret


def _password(args: argparse.Namespace, confirm: bool = False) -> str:
    password = args.password or os.environ.get("DIFFX_ENCRYPT_PASSWORD", "")
    if not password:
        import getpass
        password = getpass.getpass("Password: ")
        if confirm and password != getpass.getpass("Confirm: "):
            print("Error: Passwords do not match", file=sys.stderr)
            sys.exit(1)
    if not password:
        print("Error: Password cannot be empty", file=sys.stderr)
        sys.exit(1)
    return password


def cmd_sign(args: argparse.Namespace) -> None:
    """Sign a DiffX file with HMAC-SHA256."""
    from diffx.security import sign, signature_of

    doc = _load(args.path)
    signed = sign(doc, _secret(args))
    output = args.output or args.path
    _check_output(output)
    signed.write(output)
    print(f"Signed {output} (sig={signature_of(signed)[:16]}...)")


def cmd_verify(args: argparse.Namespace) -> None:
    """Verify the HMAC-SHA256 signature of a DiffX file."""
    from diffx.security import signature_of, verify

    doc = _load(args.path)
    if not signature_of(doc):
        print(f"FAIL: {args.path} has no signature")
        sys.exit(1)
    if verify(doc, _secret(args)):
        print(f"OK: {args.path} signature is valid")
    else:
        print(f"FAIL: {args.path} signature mismatch (tampered or wrong secret)")
        sys.exit(1)


def cmd_encrypt(args: argparse.Namespace) -> None:
    """Encrypt a DiffX file with AES-256-GCM."""
    from diffx.security import encrypt_document

    doc = _load(args.path)
    password = _password(args, confirm=True)
    output = args.output or args.path + ".enc"
    _check_output(output)
    encrypted = encrypt_document(doc, password)
    Path(output).write_bytes(encrypted)
    print(f"Encrypted {args.path} -> {output} ({len(encrypted)} bytes)")


def cmd_decrypt(args: argparse.Namespace) -> None:
    """Decrypt an encrypted DiffX file."""
    from diffx.security import decrypt_document

    enc_path = Path(args.path)
    if not enc_path.is_file():
        print(f"Error: File not found: {args.path}", file=sys.stderr)
        sys.exit(1)
    file_size = enc_path.stat().st_size
    if file_size > _max_size():
        print(f"Error: File size {file_size} exceeds maximum {_max_size()} bytes", file=sys.stderr)
        sys.exit(1)
    password = _password(args)

    try:
        doc = decrypt_document(enc_path.read_bytes(), password)
    except ValueError as e:
        logger.debug("decryption of %s failed: %s", args.path, e)
        print("Error: Decryption failed (wrong password or corrupted file)", file=sys.stderr)
        sys.exit(1)

    output = args.output
    if not output:
        output = args.path.removesuffix(".enc") if args.path.endswith(".enc") else args.path + ".dec.diffx"
    _check_output(output)
    nbytes = doc.write(output)
    print(f"Decrypted {args.path} -> {output} ({nbytes} bytes)")


def cmd_identify(args: argparse.Namespace) -> None:
    """Quick check if a file is DiffX."""
    from diffx.reader import DiffXReader

    is_diffx = DiffXReader.is_diffx(args.path)
    if is_diffx:
        print(f"{args.path}: DiffX file")
    else:
        print(f"{args.path}: not DiffX")
    sys.exit(0 if is_diffx else 1)


def cmd_view(args: argparse.Namespace) -> None:
    """Browse a DiffX file in the TUI viewer."""
    from diffx.tui.viewer import run_viewer

    run_viewer(args.path)


def build_parser() -> argparse.ArgumentParser:
    from diffx import __version__

    parser = argparse.ArgumentParser(
        prog="diffx",
        description="DiffX - hierarchical, length-delimited document format tools.",
    )
    parser.add_argument("--version", action="version", version=f"diffx {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    p_inspect = sub.add_parser("inspect", help="Show the section tree of a DiffX file")
    p_inspect.add_argument("path", help="Path to DiffX file")

    p_read = sub.add_parser("read", help="Print the payload of one section")
    p_read.add_argument("path", help="Path to DiffX file")
    p_read.add_argument("section", help="Dotted section path, e.g. change.file.diff")

    p_validate = sub.add_parser("validate", help="Validate a DiffX file")
    p_validate.add_argument("path", help="Path to DiffX file")
    p_validate.add_argument("--strict", action="store_true",
                            help="Reject anything but whitespace after the root section")

    p_convert = sub.add_parser("convert", help="Convert to/from DiffX")
    p_convert.add_argument("direction", choices=["to", "from"], help="Conversion direction")
    p_convert.add_argument("format", choices=["json", "txt"], help="Other format")
    p_convert.add_argument("input", help="Input file path")
    p_convert.add_argument("-o", "--output", help="Output file path")

    p_sign = sub.add_parser("sign", help="Sign a DiffX file with HMAC-SHA256")
    p_sign.add_argument("path", help="Path to DiffX file")
    p_sign.add_argument("-s", "--secret", help="Signing secret (or DIFFX_SIGN_SECRET, prompted if unset)")
    p_sign.add_argument("-o", "--output", help="Output path (default: overwrite input)")

    p_verify = sub.add_parser("verify", help="Verify HMAC-SHA256 signature")
    p_verify.add_argument("path", help="Path to DiffX file")
    p_verify.add_argument("-s", "--secret", help="Signing secret (or DIFFX_SIGN_SECRET, prompted if unset)")

    p_encrypt = sub.add_parser("encrypt", help="Encrypt a DiffX file with AES-256-GCM")
    p_encrypt.add_argument("path", help="Path to DiffX file")
    p_encrypt.add_argument("-p", "--password", help="Password (or DIFFX_ENCRYPT_PASSWORD, prompted if unset)")
    p_encrypt.add_argument("-o", "--output", help="Output path (default: <path>.enc)")

    p_decrypt = sub.add_parser("decrypt", help="Decrypt an encrypted DiffX file")
    p_decrypt.add_argument("path", help="Path to encrypted file")
    p_decrypt.add_argument("-p", "--password", help="Password (or DIFFX_ENCRYPT_PASSWORD, prompted if unset)")
    p_decrypt.add_argument("-o", "--output", help="Output path")

    p_identify = sub.add_parser("identify", help="Quick check if a file is DiffX")
    p_identify.add_argument("path", help="Path to file")

    p_view = sub.add_parser("view", help="Browse a DiffX file in the terminal")
    p_view.add_argument("path", help="Path to DiffX file")

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        sys.exit(0)

    commands = {
        "inspect": cmd_inspect,
        "read": cmd_read,
        "validate": cmd_validate,
        "convert": cmd_convert,
        "sign": cmd_sign,
        "verify": cmd_verify,
        "encrypt": cmd_encrypt,
        "decrypt": cmd_decrypt,
        "identify": cmd_identify,
        "view": cmd_view,
    }

    commands[args.command](args)


if __name__ == "__main__":
    main()
