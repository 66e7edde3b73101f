"""CLI interface for pii-roundtrip.

Usage:
    # Reconciled entities (stdin: text, stdout: JSON)
    echo 'Client ABN is 83 914 571 673' | python -m pii_roundtrip.cli --no-presidio detect

    # Redact, saving the reversal map encrypted
    PII_ROUNDTRIP_PASSPHRASE=... python -m pii_roundtrip.cli --no-presidio \
        redact --map-out map.json < letter.txt > redacted.json

    # Unredact (stdin: redacted text, stdout: original text)
    PII_ROUNDTRIP_PASSPHRASE=... python -m pii_roundtrip.cli unredact --map map.json

    # Encrypt / decrypt an existing plaintext map
    python -m pii_roundtrip.cli encrypt-map plain.json enc.json
    python -m pii_roundtrip.cli decrypt-map enc.json plain.json

    # Check a number
    python -m pii_roundtrip.cli validate ABN "83 914 571 673"

    # Score detection against the labelled fixtures
    python -m pii_roundtrip.cli --no-presidio evaluate
"""

from __future__ import annotations
import argparse
import getpass
import json
import logging
import os
import sys

from .config import build_config, load_config, load_from_yaml
from .evaluate import run_eval
from .exceptions import RedactorError
from .export import build_export, load_mapping, save_mapping
from .redactor import MODES, Redactor
from .validators import VALIDATORS

PASSPHRASE_ENV = "PII_ROUNDTRIP_PASSPHRASE"
CONFIG_ENV = "PII_ROUNDTRIP_CONFIG"


def _passphrase(args: argparse.Namespace, *, prompt: bool = False) -> str | None:
    value = os.environ.get(args.passphrase_env)
    if not value and prompt:
        value = getpass.getpass("Mapping passphrase: ")
    return value or None


def _build_redactor(args: argparse.Namespace) -> Redactor:
    cfg = load_from_yaml(args.config) if args.config else load_config({})
    if args.mode:
        cfg["mode"] = args.mode
    if args.no_presidio:
        cfg["use_presidio"] = False
    if args.random:
        cfg["deterministic"] = False
    if args.window is not None:
        cfg["rescue_window"] = args.window
    if getattr(args, "embed_map", False):
        cfg["embed_front_matter"] = True
    return Redactor(build_config(cfg))


def _max_import_bytes(args: argparse.Namespace) -> int:
    cfg = load_from_yaml(args.config) if args.config else load_config({})
    return cfg["max_import_bytes"]


def _dump(data: object) -> None:
    json.dump(data, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")


def cmd_detect(args: argparse.Namespace) -> None:
    """Print reconciled entities for text on stdin."""
    redactor = _build_redactor(args)
    text = sys.stdin.read()
    redactor.check_size(text)
    entities = redactor.reconcile(redactor.detect(text), text)
    _dump([e.to_dict() for e in entities])


def cmd_redact(args: argparse.Namespace) -> None:
    """Redact text on stdin."""
    redactor = _build_redactor(args)
    text = sys.stdin.read()
    result = redactor.redact(text)

    output = {
        "text": result.text,
        "mode": result.mode,
        "entities": [
            {"label": e.label, "start": e.start, "end": e.end, "source": e.source.value}
            for e in result.entities
        ],
        "skipped": len(result.skipped),
    }
    if args.map_out and result.mapping:
        save_mapping(args.map_out, result.mapping, passphrase=_passphrase(args))
    elif result.mapping:
        output["mapping"] = build_export(result.mapping)["mapping"]
    _dump(output)


def cmd_unredact(args: argparse.Namespace) -> None:
    """Restore placeholders in text on stdin."""
    redactor = _build_redactor(args)
    mapping = None
    if args.map:
        mapping = load_mapping(
            args.map,
            passphrase=_passphrase(args),
            max_bytes=_max_import_bytes(args),
        )
    sys.stdout.write(redactor.unredact(sys.stdin.read(), mapping))


def cmd_encrypt_map(args: argparse.Namespace) -> None:
    """Encrypt a plaintext mapping export."""
    mapping = load_mapping(args.source, max_bytes=_max_import_bytes(args))
    passphrase = _passphrase(args, prompt=True)
    if not passphrase:
        raise RedactorError("A passphrase is required to encrypt a mapping")
    save_mapping(args.dest, mapping, passphrase=passphrase)


def cmd_decrypt_map(args: argparse.Namespace) -> None:
    """Decrypt an encrypted mapping export to plaintext."""
    mapping = load_mapping(
        args.source,
        passphrase=_passphrase(args, prompt=True),
        max_bytes=_max_import_bytes(args),
    )
    save_mapping(args.dest, mapping)


def cmd_validate(args: argparse.Namespace) -> None:
    """Run a checksum validator."""
    label = args.label.upper()
    valid = VALIDATORS[label](args.value)
    _dump({"label": label, "valid": valid})
    if not valid:
        sys.exit(1)


def cmd_evaluate(args: argparse.Namespace) -> None:
    """Run the fixture evaluation; exit 1 if any fixture fails."""
    results = run_eval(_build_redactor(args))
    _dump(results)
    if not all(r["ok"] for r in results):
        sys.exit(1)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="pii-roundtrip",
        description="Reversible PII redaction",
    )
    parser.add_argument("--config", default=os.environ.get(CONFIG_ENV), help="YAML config file")
    parser.add_argument("--mode", choices=MODES, help="Redaction mode")
    parser.add_argument("--no-presidio", action="store_true", help="Regex-only mode")
    parser.add_argument("--random", action="store_true", help="Random placeholder tokens")
    parser.add_argument("--window", type=int, help="Span rescue window (chars)")
    parser.add_argument("--passphrase-env", default=PASSPHRASE_ENV,
                        help="Environment variable holding the mapping passphrase")
    parser.add_argument("--log-level", default="WARNING", help="Logging level")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("detect", help="Print reconciled entities (stdin)")
    p = sub.add_parser("redact", help="Redact text (stdin)")
    p.add_argument("--map-out", help="Write the mapping to this file")
    p.add_argument("--embed-map", action="store_true", help="Embed the map as front matter")
    p = sub.add_parser("unredact", help="Unredact text (stdin)")
    p.add_argument("--map", help="Mapping file (plaintext or encrypted)")
    p = sub.add_parser("encrypt-map", help="Encrypt a mapping file")
    p.add_argument("source")
    p.add_argument("dest")
    p = sub.add_parser("decrypt-map", help="Decrypt a mapping file")
    p.add_argument("source")
    p.add_argument("dest")
    p = sub.add_parser("validate", help="Check an identifier's checksum")
    p.add_argument("label", choices=sorted(VALIDATORS), type=str.upper)
    p.add_argument("value")
    sub.add_parser("evaluate", help="Score detection against labelled fixtures")

    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), stream=sys.stderr,
                        format="%(levelname)s %(name)s: %(message)s")

    cmds = {
        "detect": cmd_detect,
        "redact": cmd_redact,
        "unredact": cmd_unredact,
        "encrypt-map": cmd_encrypt_map,
        "decrypt-map": cmd_decrypt_map,
        "validate": cmd_validate,
        "evaluate": cmd_evaluate,
    }
    try:
        cmds[args.command](args)
    except RedactorError as e:
        sys.stderr.write(f"error: {e}\n")
        sys.exit(1)


if __name__ == "__main__":
    main()
