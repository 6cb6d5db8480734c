#!/usr/bin/env python3
"""
QuorumGate Command Line Interface

Usage:
    quorumgate fingerprint --value <n> --target <target> [--payload-hex <hex>]
    quorumgate roster --file <roster.json>
    quorumgate replay --roster <roster.json> --script <ops.json> [--fail-executor]

A replay script is a JSON list of steps run against a fresh authorizer:

    [
      {"op": "propose", "value": 10, "target": "vendor-x", "payload_hex": "", "as": "F"},
      {"op": "approve", "proposal": "F", "caller": "alice"},
      {"op": "execute", "proposal": "F"},
      {"op": "revoke", "identity": "bob", "caller": "alice"},
      {"op": "transfer_admin", "new_admin": "carol", "caller": "alice"}
    ]

"proposal" may name an alias bound with "as" or be a literal fingerprint.
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional


def load_json(path: str) -> Any:
    """Load JSON from file."""
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def _payload(hex_str: Optional[str]) -> bytes:
    return bytes.fromhex(hex_str or "")


def cmd_fingerprint(args) -> int:
    """Compute the fingerprint of proposal content."""
    from quorumgate import fingerprint

    try:
        payload = _payload(args.payload_hex)
        print(fingerprint(args.value, args.target, payload))
    except ValueError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1
    return 0


def cmd_roster(args) -> int:
    """Validate a roster file and summarize it."""
    from quorumgate import SignatoryRegistry, QuorumGateError

    try:
        registry = SignatoryRegistry.from_dict(load_json(args.file))
    except QuorumGateError as e:
        print(f"✗ INVALID: {e.message}", file=sys.stderr)
        if e.details:
            print(json.dumps(e.details, indent=2), file=sys.stderr)
        return 1

    print(json.dumps(registry.to_dict(), indent=2))
    if registry.threshold > registry.total_weight:
        print("\n! threshold exceeds total weight; quorum is unreachable", file=sys.stderr)
    else:
        print(f"\n✓ {registry.threshold}-of-{registry.total_weight} roster", file=sys.stderr)
    return 0


_STRING_FIELDS = ("op", "proposal", "as", "target", "payload_hex", "caller", "identity", "new_admin")


def _check_step(step: Any) -> None:
    if not isinstance(step, dict):
        raise ValueError(f"step must be a JSON object, got {type(step).__name__}")
    for key in _STRING_FIELDS:
        if key in step and not isinstance(step[key], str):
            raise ValueError(f"{key} must be a string, got {step[key]!r}")
    value = step.get("value", 0)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"value must be an integer, got {value!r}")


def _run_step(auth, step: Dict[str, Any], aliases: Dict[str, str]) -> Dict[str, Any]:
    _check_step(step)
    op = step.get("op")
    ref = step.get("proposal")
    fp = aliases.get(ref, ref)

    if op == "propose":
        fp = auth.propose(step.get("value", 0), step.get("target", ""), _payload(step.get("payload_hex")))
        if step.get("as"):
            aliases[step["as"]] = fp
        return {"fingerprint": fp}
    elif op == "approve":
        return {"fingerprint": fp, "approved_weight": auth.approve(fp, step.get("caller"))}
    elif op == "execute":
        return auth.execute(fp).to_dict()
    elif op == "revoke":
        signatory = auth.revoke(step.get("identity"), step.get("caller"))
        return {"revoked": signatory.identity, "total_weight": auth.total_weight}
    elif op == "transfer_admin":
        previous = auth.transfer_admin(step.get("new_admin"), step.get("caller"))
        return {"previous_admin": previous, "admin": auth.admin}
    raise ValueError(f"unknown op: {op!r}")


def cmd_replay(args) -> int:
    """Replay a script of operations and print results plus the event log."""
    from quorumgate import CallableExecutor, QuorumGateError, create_authorizer

    succeed = not args.fail_executor
    executor = CallableExecutor(lambda target, value, payload: succeed)

    try:
        auth = create_authorizer(load_json(args.roster), executor=executor)
    except QuorumGateError as e:
        print(f"✗ INVALID ROSTER: {e.message}", file=sys.stderr)
        return 1

    script = load_json(args.script)
    if not isinstance(script, list):
        print("✗ script must be a JSON list of steps", file=sys.stderr)
        return 1

    aliases: Dict[str, str] = {}
    results: List[Dict[str, Any]] = []
    failed = False
    for index, step in enumerate(script):
        op = step.get("op") if isinstance(step, dict) else None
        try:
            result = {"step": index, "op": op, "ok": True, "result": _run_step(auth, step, aliases)}
        except (QuorumGateError, ValueError) as e:
            failed = True
            error = e.to_dict() if isinstance(e, QuorumGateError) else {"error": "INVALID_STEP", "message": str(e)}
            result = {"step": index, "op": op, "ok": False, "error": error}
        results.append(result)

    print(json.dumps({
        "results": results,
        "events": [e.to_dict() for e in auth.events.query()],
        "registry": auth.registry.to_dict(),
    }, indent=2))
    return 1 if failed else 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="QuorumGate CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  quorumgate fingerprint --value 10 --target vendor-x
  quorumgate roster -f roster.json
  quorumgate replay -r roster.json -s ops.json
        """
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log lifecycle transitions to stderr")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    fp_parser = subparsers.add_parser("fingerprint", help="Compute a proposal fingerprint")
    fp_parser.add_argument("--value", type=int, required=True, help="Transferable amount")
    fp_parser.add_argument("--target", required=True, help="Destination identity")
    fp_parser.add_argument("--payload-hex", default="", help="Payload bytes as hex")

    roster_parser = subparsers.add_parser("roster", help="Validate a roster file")
    roster_parser.add_argument("-f", "--file", required=True, help="Roster JSON file")

    replay_parser = subparsers.add_parser("replay", help="Replay a script of operations")
    replay_parser.add_argument("-r", "--roster", required=True, help="Roster JSON file")
    replay_parser.add_argument("-s", "--script", required=True, help="Operations JSON file")
    replay_parser.add_argument("--fail-executor", action="store_true", help="Executor reports failure for every call")

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.INFO, stream=sys.stderr,
                            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    if args.command == "fingerprint":
        return cmd_fingerprint(args)
    elif args.command == "roster":
        return cmd_roster(args)
    elif args.command == "replay":
        return cmd_replay(args)

    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
