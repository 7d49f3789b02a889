"""Command line interface: sanitize files or stdin to stdout."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import sys

from .parser import CleanHTML
from .policy import DEFAULT_POLICY, SanitizationPolicy, policy_from_dict
from .sanitize import sanitize

logger = logging.getLogger(__name__)


def _load_policy(path: str) -> SanitizationPolicy:
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    return policy_from_dict(data)


def _read_inputs(paths: list[str]) -> list[tuple[str, bytes]]:
    if not paths:
        return [("<stdin>", sys.stdin.buffer.read())]
    inputs = []
    for path in paths:
        with open(path, "rb") as f:
            inputs.append((path, f.read()))
    return inputs


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cleanhtml",
        description="Sanitize untrusted HTML fragments and write safe markup to stdout.",
    )
    parser.add_argument("files", nargs="*", metavar="FILE", help="Input files (default: read stdin)")
    parser.add_argument("--policy", metavar="FILE", help="JSON file with SanitizationPolicy fields")
    parser.add_argument(
        "--no-link-hardening",
        action="store_true",
        help="Do not add rel/target attributes to absolute links",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Exit with status 1 if any input would be changed by sanitization",
    )
    parser.add_argument("--errors", action="store_true", help="Print parse errors to stderr")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    policy = DEFAULT_POLICY
    if args.policy:
        try:
            policy = _load_policy(args.policy)
        except (OSError, ValueError, TypeError) as e:
            print(f"cleanhtml: invalid policy {args.policy}: {e}", file=sys.stderr)
            return 2
    if args.no_link_hardening:
        policy = dataclasses.replace(policy, force_link_rel=(), link_target=None)

    try:
        inputs = _read_inputs(args.files)
    except OSError as e:
        print(f"cleanhtml: {e}", file=sys.stderr)
        return 2

    changed = False
    for name, raw in inputs:
        text = raw.decode("utf-8", errors="replace")
        logger.debug("sanitizing %s (%d characters)", name, len(text))
        if args.errors:
            for error in CleanHTML(text, policy=policy, collect_errors=True).errors:
                print(f"{name}:{error}", file=sys.stderr)
        output = sanitize(text, policy=policy)
        if output != text:
            changed = True
            logger.info("%s changed under sanitization", name)
        if not args.check:
            sys.stdout.write(output)

    if args.check and changed:
        return 1
    return 0
