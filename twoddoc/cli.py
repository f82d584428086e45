"""
Command-line interface.

Usage:
    twoddoc parse "<payload>" [--json] [--verbose]
    twoddoc parse --file payload.txt
    twoddoc circuit --id id.txt --taxes taxes.txt [--profile tenant]

Payload files are read as Latin-1 so every byte maps to one character.
"-" reads from stdin.
"""

import argparse
import json
import logging
import sys

from twoddoc.circuit_input import build_circuit_data
from twoddoc.errors import TwoDDocError
from twoddoc.models import DocumentResult
from twoddoc.modules.matchers import PROFILES, MatcherThresholds
from twoddoc.parser import parse

PAYLOAD_ENCODING = "latin-1"


def read_payload(path: str) -> str:
    """Read a raw payload from a file (or stdin for "-"), stripping the final newline."""
    if path == "-":
        data = sys.stdin.buffer.read()
    else:
        with open(path, "rb") as f:
            data = f.read()
    return data.decode(PAYLOAD_ENCODING).rstrip("\r\n")


def format_document(document: DocumentResult) -> str:
    """Human-readable summary of a parsed document."""
    header = document.header
    lines = [
        "=" * 50,
        f"2D-DOC v{header.version:02d} ({header.encoding})",
        "=" * 50,
        f"CA / certificate: {header.ca_id} / {header.cert_id}",
        f"Document: perimeter {header.perimeter_id}, type {header.doc_type_id}, country {header.country_id}",
        f"Issued: {header.issuance_date or '-'}   Signed: {header.signature_date or '-'}",
        f"Signature: {'VALID' if document.signature_valid else 'INVALID'}",
        "",
    ]
    for field_id, parsed in document.fields.items():
        lines.append(f"  [{field_id}] {parsed.name}: {parsed.value}")
    if document.annex:
        lines.append("")
        lines.append("Annex:")
        for field_id, parsed in document.annex.items():
            lines.append(f"  [{field_id}] {parsed.name}: {parsed.value}")
    return "\n".join(lines)


def build_arg_parser() -> argparse.ArgumentParser:
    arg_parser = argparse.ArgumentParser(prog="twoddoc", description="Decode and verify 2D-DOC barcodes")
    arg_parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    commands = arg_parser.add_subparsers(dest="command", required=True)

    parse_cmd = commands.add_parser("parse", help="Decode one payload")
    parse_cmd.add_argument("payload", nargs="?", help="Raw payload")
    parse_cmd.add_argument("--file", "-f", help="Read the payload from a file ('-' for stdin)")
    parse_cmd.add_argument("--json", action="store_true", help="Output JSON")

    circuit_cmd = commands.add_parser("circuit", help="Build the identity + tax notice circuit input")
    circuit_cmd.add_argument("--id", required=True, dest="id_file", help="Identity payload file")
    circuit_cmd.add_argument("--taxes", required=True, dest="taxes_file", help="Tax notice payload file")
    circuit_cmd.add_argument("--profile", choices=PROFILES, default="multiple")
    circuit_cmd.add_argument("--min-revenue", type=int, default=MatcherThresholds.min_revenue)
    circuit_cmd.add_argument("--tax-year", type=int, default=MatcherThresholds.tax_year)

    return arg_parser


def main(argv: list[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        if args.command == "parse":
            if args.file:
                payload = read_payload(args.file)
            elif args.payload is not None:
                payload = args.payload
            else:
                print("Error: give a payload or --file", file=sys.stderr)
                return 2

            document = parse(payload)
            if args.json:
                print(json.dumps(document.to_dict(), indent=2, ensure_ascii=False))
            else:
                print(format_document(document))
            return 0 if document.signature_valid else 1

        thresholds = MatcherThresholds(min_revenue=args.min_revenue, tax_year=args.tax_year)
        circuit_input = build_circuit_data(
            read_payload(args.id_file),
            read_payload(args.taxes_file),
            profile=args.profile,
            thresholds=thresholds,
        )
        print(json.dumps(circuit_input.to_dict(), indent=2))
        return 0

    except (TwoDDocError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
