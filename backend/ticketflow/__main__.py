"""TicketFlow Payouts CLI entry point."""

import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

env_file = Path(__file__).parent.parent / ".env"
load_dotenv(env_file)

from ticketflow import __version__
from ticketflow.config import get_settings
from ticketflow.payments.calculator import format_currency
from ticketflow.payments.exceptions import PaymentError
from ticketflow.payouts import run_payout_batch
from ticketflow.scheduler import start_scheduler
from ticketflow.settlement import SettlementService
from ticketflow.storage import create_store

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

CONFIG_TEMPLATE = """# TicketFlow Payouts Configuration
# Operational parameters for fee splits and payout batching.
# Secrets (CRON_SECRET, LOGFIRE_TOKEN) belong in .env, not here.

fees:
  platform_fee_rate: 0.01
  currency: GHS
  pass_fees_to_customer: false
  commission_rates:
    Free: 0.05
    Essential: 0.03
    Pro: 0.01
    Custom: 0.01

gateways:
  - id: mtn-momo
    name: MTN Mobile Money
    enabled: true
    percent_fee: 1.8
    fixed_fee: 0
    currencies: [GHS]

scheduler:
  payout_batch_minutes: 60
  batch_time_budget_seconds: 300
  max_workers: 4
  require_verified_profile: true

storage:
  backend: yaml
  ledger_filename: ledger.yaml
"""


def _init_logfire() -> None:
    """Initialize Logfire if available, without failing commands."""
    try:
        from ticketflow.observability import initialize_logfire

        initialize_logfire(get_settings())
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")


def _parse_now(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize data directory and configuration file."""
    data_dir = Path("data").resolve()

    try:
        data_dir.mkdir(exist_ok=True)
        logger.info(f"Created data directory: {data_dir}")

        config_path = data_dir / "config.yaml"
        if not config_path.exists():
            config_path.write_text(CONFIG_TEMPLATE)
            logger.info(f"Created config template: {config_path}")
        else:
            logger.info(f"Config file already exists: {config_path}")

        print(f"\n✓ Data directory initialized at {data_dir}")
        print("\nNext steps:")
        print("1. Set CRON_SECRET in .env to protect the HTTP batch trigger")
        print("2. Review data/config.yaml (fee rates, gateways, batch interval)")
        print("3. Run 'python -m ticketflow config' to verify configuration")
        print("4. Run 'python -m ticketflow run' to start the payout scheduler\n")
        return 0

    except OSError as e:
        logger.error(f"Failed to initialize: {e}")
        print(f"\n❌ Initialization failed: {e}\n")
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = get_settings()

        print("\n=== TicketFlow Payouts Configuration ===\n")
        print(f"Data Directory: {settings.data_dir}\n")

        print("Fees:")
        print(f"  Platform Fee: {settings.fees.platform_fee_rate:.2%}")
        for tier, rate in settings.fees.commission_rates.items():
            print(f"  Commission ({tier}): {rate:.2%}")
        print(f"  Currency: {settings.fees.currency}")
        print(f"  Fees Passed To Customer: {settings.fees.pass_fees_to_customer}\n")

        print("Gateways:")
        for gateway in settings.gateways:
            state = "enabled" if gateway.enabled else "disabled"
            print(f"  {gateway.id}: {gateway.percent_fee}% + {gateway.fixed_fee} ({state})")
        print()

        print("Scheduler:")
        print(f"  Payout Batch Interval: {settings.scheduler.payout_batch_minutes} min")
        print(f"  Batch Time Budget: {settings.scheduler.batch_time_budget_seconds}s")
        print(f"  Max Workers: {settings.scheduler.max_workers}")
        print(f"  Require Verified Profile: {settings.scheduler.require_verified_profile}\n")

        print(f"Storage: {settings.storage.backend} ({settings.ledger_path})\n")

        print("Secrets:")
        print(f"  Cron Secret: {'✓ Set' if settings.cron_secret else '✗ Not set'}")
        print(f"  Logfire: {'✓ Set' if settings.logfire_token else '✗ Not set'}\n")
        return 0

    except ValidationError as e:
        print("\n❌ Configuration Error:\n")
        for error in e.errors():
            print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
        print()
        return 1
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        print(f"\n❌ Failed to load configuration: {e}\n")
        return 1


def cmd_status(args: argparse.Namespace) -> int:
    """Display ledger status: creators, payouts and reconciliation issues."""
    try:
        settings = get_settings()
        store = create_store(settings)
        service = SettlementService(store, settings)
        currency = settings.fees.currency

        profiles = store.list_profiles()
        print("\n=== TicketFlow Ledger Status ===\n")
        print(f"Creators: {len(profiles)}")
        for profile in profiles[:10]:
            balance = service.get_creator_balance(profile.creator_id)
            print(
                f"  {profile.creator_id}: unpaid {format_currency(balance.unpaid, currency)}, "
                f"in flight {format_currency(balance.in_flight, currency)}, "
                f"paid out {format_currency(balance.paid_out, currency)}"
            )
        if len(profiles) > 10:
            print(f"  ... and {len(profiles) - 10} more")
        print()

        pending = [p for p in store.list_payouts() if p.status in ("pending", "processing")]
        print(f"Payouts awaiting transfer: {len(pending)}")

        issues = store.list_issues(unresolved_only=True)
        print(f"Unresolved reconciliation issues: {len(issues)}")
        for issue in issues[:5]:
            print(f"  • {issue.transaction_id} refunded after payout {issue.payout_id}")
        print()
        return 0

    except PaymentError as e:
        logger.error(f"Failed to read status: {e}")
        print(f"\n❌ Failed to read status: {e}\n")
        return 1


def cmd_split(args: argparse.Namespace) -> int:
    """Show the fee split for an amount."""
    try:
        settings = get_settings()
        service = SettlementService(create_store(settings), settings)
        split = service.quote_split(args.amount, args.gateway, args.tier)
        currency = settings.fees.currency

        print(f"\n=== Fee Split ({args.tier}, {args.gateway}) ===\n")
        print(f"Gross:          {format_currency(split.gross_amount, currency)}")
        print(f"Processing fee: {format_currency(split.processing_fee, currency)}")
        print(f"Platform fee:   {format_currency(split.platform_fee, currency)}")
        print(f"Commission:     {format_currency(split.commission_fee, currency)}")
        print(f"Net payout:     {format_currency(split.net_payout, currency)}\n")
        return 0

    except PaymentError as e:
        print(f"\n❌ {e}\n")
        return 1


def cmd_batch(args: argparse.Namespace) -> int:
    """Run one payout batch now (or as of --now)."""
    _init_logfire()

    try:
        now = _parse_now(args.now)
        print(f"\n=== Payout Batch @ {now.isoformat()} ===\n")

        result = run_payout_batch(now=now)
        currency = get_settings().fees.currency

        print(f"Processed creators: {len(result.processed_creators)}")
        print(f"Skipped creators: {len(result.skipped_creators)}")
        print(f"Errors: {len(result.errors)}")
        print(f"Total paid: {format_currency(result.total_amount, currency)}\n")

        for payout in result.payouts:
            print(
                f"  • {payout.id} -> {payout.creator_id}: "
                f"{format_currency(payout.amount, currency)} ({len(payout.transaction_ids)} txns)"
            )
        for error in result.errors:
            print(f"  ✗ {error.creator_id}: {error.error_type}: {error.message}")
        print()

        return 1 if result.errors else 0

    except ValueError as e:
        print(f"\n❌ Invalid --now value: {e}\n")
        return 1
    except Exception as e:
        logger.error(f"Payout batch failed: {e}", exc_info=True)
        print(f"\n❌ Payout batch failed: {e}\n")
        return 1


def cmd_run(args: argparse.Namespace) -> int:
    """Start the recurring payout scheduler."""
    try:
        _init_logfire()

        if args.debug:
            logging.getLogger().setLevel(logging.DEBUG)

        settings = get_settings()

        print("\n=== TicketFlow Payout Scheduler ===\n")
        print(f"Version: {__version__}")
        print(f"Ledger: {settings.ledger_path}")
        print(f"Batch Interval: {settings.scheduler.payout_batch_minutes} min\n")

        start_scheduler(settings)
        return 0

    except KeyboardInterrupt:
        print("\n\nReceived interrupt signal. Shutting down...\n")
        return 0
    except Exception as e:
        logger.error(f"Failed to start scheduler: {e}", exc_info=True)
        print(f"\nFailed to start: {e}\n")
        return 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the HTTP API."""
    import uvicorn

    from ticketflow.api.server import create_app

    _init_logfire()
    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=args.host or settings.api.host,
        port=args.port or settings.api.port,
    )
    return 0


def main() -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="TicketFlow Payouts: fee splits, settlement tracking and creator payouts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"TicketFlow Payouts {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_init = subparsers.add_parser(
        "init",
        help="Initialize data directory and configuration file",
    )
    parser_init.set_defaults(func=cmd_init)

    parser_config = subparsers.add_parser(
        "config",
        help="Display merged configuration",
    )
    parser_config.set_defaults(func=cmd_config)

    parser_status = subparsers.add_parser(
        "status",
        help="Display creator balances, pending payouts and reconciliation issues",
    )
    parser_status.set_defaults(func=cmd_status)

    parser_split = subparsers.add_parser(
        "split",
        help="Show the fee split for an amount in minor units",
    )
    parser_split.add_argument("amount", type=int, help="Gross amount in minor units")
    parser_split.add_argument("--gateway", default="mtn-momo", help="Gateway id")
    parser_split.add_argument(
        "--tier",
        default="Free",
        choices=["Free", "Essential", "Pro", "Custom"],
        help="Creator commission tier",
    )
    parser_split.set_defaults(func=cmd_split)

    parser_batch = subparsers.add_parser(
        "batch",
        help="Run the payout batch once",
    )
    parser_batch.add_argument(
        "--now",
        help="ISO timestamp to run the batch as of (defaults to current UTC time)",
    )
    parser_batch.set_defaults(func=cmd_batch)

    parser_run = subparsers.add_parser(
        "run",
        help="Start the recurring payout scheduler",
    )
    parser_run.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser_run.set_defaults(func=cmd_run)

    parser_serve = subparsers.add_parser(
        "serve",
        help="Start the HTTP API",
    )
    parser_serve.add_argument("--host", help="Bind host (defaults to api.host)")
    parser_serve.add_argument("--port", type=int, help="Bind port (defaults to api.port)")
    parser_serve.set_defaults(func=cmd_serve)

    args = parser.parse_args()

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
