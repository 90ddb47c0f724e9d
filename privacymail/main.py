"""Command-line entry point.

Examples:
    privacymail anonymize --scope mailbox-1 < message.txt > masked.json
    privacymail restore --mapping masked.json < model_output.txt
"""

import argparse
import json
import sys
from pathlib import Path

from privacymail.anonymization.anonymizer import Anonymizer
from privacymail.anonymization.factory import AnonymizerFactory
from privacymail.anonymization.models import AnonymizeOptions
from privacymail.config.settings import Settings
from privacymail.logging.logger import Log


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="privacymail",
        description="Reversibly mask personal data in text read from stdin.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    anonymize = subparsers.add_parser("anonymize", help="Mask stdin, print JSON")
    anonymize.add_argument("--scope", default=None, help="Memory scope key")
    anonymize.add_argument(
        "--no-memory", action="store_true", help="Ignore and do not update memory"
    )
    anonymize.add_argument(
        "--no-remember", action="store_true", help="Use memory but do not update it"
    )

    restore = subparsers.add_parser("restore", help="Restore stdin, print JSON")
    restore.add_argument(
        "--mapping",
        type=Path,
        required=True,
        help="JSON file holding a mapping, or the output of 'anonymize'",
    )
    return parser


def run_anonymize(anonymizer: Anonymizer, args: argparse.Namespace, text: str) -> dict[str, object]:
    options = AnonymizeOptions(
        scope_key=args.scope or AnonymizeOptions().scope_key,
        use_memory=not args.no_memory,
        remember=not args.no_remember,
    )
    result = anonymizer.anonymize(text, options)
    return {
        "masked_text": result.masked_text,
        "mapping": result.mapping,
        "artifacts": [
            {"type": a.type, "original": a.original, "replacement": a.replacement}
            for a in result.artifacts
        ],
    }


def run_restore(anonymizer: Anonymizer, args: argparse.Namespace, text: str) -> dict[str, object]:
    payload = json.loads(args.mapping.read_text(encoding="utf-8"))
    mapping = payload.get("mapping", payload) if isinstance(payload, dict) else {}
    result = anonymizer.restore(text, mapping)
    return {
        "restored_text": result.restored_text,
        "highlights": [
            {
                "start": h.start,
                "end": h.end,
                "placeholder": h.placeholder,
                "original": h.original,
            }
            for h in result.highlights
        ],
    }


def main(argv: list[str] | None = None) -> int:
    """Entry point: parse args -> build anonymizer -> process stdin."""
    args = build_parser().parse_args(argv)
    settings = Settings()
    Log.configure(settings.log_level, stream=sys.stderr)

    anonymizer = AnonymizerFactory.create(settings)
    text = sys.stdin.read()
    if args.command == "anonymize":
        output = run_anonymize(anonymizer, args, text)
    else:
        output = run_restore(anonymizer, args, text)
    json.dump(output, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
