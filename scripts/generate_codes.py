"""Generate hashed access codes for a kit and print them once.

Usage:
    python -m scripts.generate_codes <kit> [count] [--max-uses N] [--expires-at ISO]

Only bcrypt hashes are stored; the printed list is the only copy of the
plaintext codes.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import datetime

from kitgate.core.config import settings
from kitgate.core.container import ServiceContainer
from kitgate.core.errors import AppError
from kitgate.core.logging import configure_logging
from kitgate.schemas.admin import GeneratedCodesResponse

logger = logging.getLogger("scripts.generate_codes")


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate hashed kit access codes.")
    parser.add_argument("kit", help="Kit slug, e.g. startup, oro or zafiro")
    parser.add_argument("count", nargs="?", type=int, default=1, help="Number of codes (default 1)")
    parser.add_argument("--max-uses", type=positive_int, default=None, help="Uses allowed per code")
    parser.add_argument(
        "--expires-at",
        type=datetime.fromisoformat,
        default=None,
        help="Expiry timestamp in ISO 8601",
    )
    return parser


def format_codes(result: GeneratedCodesResponse) -> str:
    lines = [f"Generated {len(result.codes)} code(s) for '{result.customer_type}':", ""]
    lines.extend(f"  {generated.code}" for generated in result.codes)
    lines.extend(["", "Store these codes now; they cannot be recovered later."])
    return "\n".join(lines)


async def run(args: argparse.Namespace) -> GeneratedCodesResponse:
    services = ServiceContainer.from_settings(settings)
    try:
        return await services.admin.generate_codes(
            args.kit,
            args.count,
            max_uses=args.max_uses,
            expires_at=args.expires_at,
        )
    finally:
        await services.aclose()


def main(argv: list[str] | None = None) -> int:
    configure_logging(settings.log)
    args = build_parser().parse_args(argv)

    try:
        result = asyncio.run(run(args))
    except AppError as exc:
        logger.error("generate_codes.failed", extra={"error_code": exc.code})
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1

    print(format_codes(result))
    return 0


if __name__ == "__main__":
    sys.exit(main())
