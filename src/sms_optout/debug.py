from __future__ import annotations

import argparse

from sms_optout.keywords import classify
from sms_optout.phone import normalize_phone


def main(argv: list[str] | None = None) -> None:
    """Show how a message body and sender number would be handled."""
    parser = argparse.ArgumentParser(description="Classify an SMS body offline.")
    parser.add_argument("text", type=str)
    parser.add_argument("--phone", type=str, default=None, help="sender number to normalize")
    parser.add_argument("--lenient", action="store_true", help="keep a leading '+'")
    args = parser.parse_args(argv)

    print(f"classification: {classify(args.text).value}")

    if args.phone is not None:
        normalized = normalize_phone(args.phone, lenient=args.lenient)
        print(f"phone: {args.phone} -> {normalized}")


if __name__ == "__main__":
    main()
