"""Command-line interface for costsheet."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

import uvicorn

from .config import settings


def main():
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="costsheet - Construction budget sheet importer"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable debug logging"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Server command
    server_parser = subparsers.add_parser("serve", help="Start the web server")
    server_parser.add_argument(
        "--host", default=settings.host, help=f"Host to bind to (default: {settings.host})"
    )
    server_parser.add_argument(
        "--port", type=int, default=settings.port, help=f"Port to bind to (default: {settings.port})"
    )
    server_parser.add_argument(
        "--reload", action="store_true", help="Enable auto-reload for development"
    )

    # Import command
    import_parser = subparsers.add_parser(
        "import", help="Import a budget sheet and print its line items"
    )
    import_parser.add_argument("file", help="Path to a .csv, .tsv or .xlsx budget sheet")
    import_parser.add_argument(
        "--billing-rate",
        type=float,
        default=settings.default_billing_rate,
        help=f"Labor billing rate per hour (default: {settings.default_billing_rate})",
    )
    import_parser.add_argument(
        "--actual-rate",
        type=float,
        default=settings.default_actual_cost_rate,
        help=f"Labor actual cost rate per hour (default: {settings.default_actual_cost_rate})",
    )
    import_parser.add_argument(
        "--offline", action="store_true", help="Classify with rules instead of an LLM"
    )
    import_parser.add_argument(
        "--json", action="store_true", help="Print the confirmed line items as JSON"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        run_server(args.host, args.port, args.reload)
    elif args.command == "import":
        code = asyncio.run(
            run_import(args.file, args.billing_rate, args.actual_rate, args.offline, args.json)
        )
        sys.exit(code)
    else:
        parser.print_help()
        sys.exit(1)


def run_server(host: str, port: int, reload: bool):
    """Run the web server."""
    uvicorn.run(
        "costsheet.api:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=True,
    )


async def run_import(
    path: str,
    billing_rate: float,
    actual_rate: float,
    offline: bool = False,
    as_json: bool = False,
) -> int:
    """Import one file and print the result. Returns the exit code."""
    from pydantic import ValidationError

    from .errors import OracleUnavailableError
    from .finance import LaborRates
    from .importer import ImportOrchestrator
    from .llm import create_classification_oracle

    file_path = Path(path)
    if not file_path.is_file():
        print(f"File not found: {path}", file=sys.stderr)
        return 1

    try:
        rates = LaborRates(
            billing_rate_per_hour=billing_rate, actual_cost_rate_per_hour=actual_rate
        )
    except ValidationError:
        print("Labor rates must be greater than zero.", file=sys.stderr)
        return 1

    config = settings.model_copy(update={"llm_provider": "offline"}) if offline else settings
    try:
        oracle = create_classification_oracle(config)
    except OracleUnavailableError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1

    orchestrator = ImportOrchestrator(oracle, rates, config)
    if not orchestrator.upload_file(file_path.read_bytes(), file_path.name):
        print(f"Error: {orchestrator.error}", file=sys.stderr)
        return 1
    if not await orchestrator.process():
        print(f"Error: {orchestrator.error}", file=sys.stderr)
        return 1

    summary = orchestrator.selected_summary()
    if not orchestrator.items:
        print("No line items were imported.", file=sys.stderr)
        for warning in orchestrator.warnings:
            print(f"  ! {warning}", file=sys.stderr)
        return 1

    line_items = orchestrator.confirm()

    if as_json:
        output = {
            "line_items": [item.model_dump(mode="json") for item in line_items],
            "summary": orchestrator.result.summary.model_dump(mode="json"),
        }
        print(json.dumps(output, indent=2))
        return 0

    print(f"{file_path.name}: {len(line_items)} line items")
    print("=" * 72)
    for item in line_items:
        print(
            f"{item.description[:34]:<34} {item.category.value:<15} "
            f"{item.quantity:>8.2f} {item.unit.value:<2} {item.total:>10,.2f}"
        )
    print("=" * 72)
    print(f"Total cost:   ${summary.total_cost:,.2f}")
    print(f"Total price:  ${summary.total_price:,.2f}")
    print(f"Labor hours:  {summary.total_labor_hours:,.2f}")
    print(f"Labor cushion: ${summary.estimated_labor_cushion:,.2f}")
    if orchestrator.warnings:
        print("\nWarnings:")
        for warning in orchestrator.warnings:
            print(f"  ! {warning}")
    return 0


if __name__ == "__main__":
    main()
