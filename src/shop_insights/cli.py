"""
Command-line interface for Shop Insights operations.

Covers the tasks an operator runs outside the API: schema creation,
configuration checks, key generation, a blocking resync for one store and
starting the API server.
"""

import argparse
import json
import os
import sys
from typing import List, Optional

from shop_insights.utils.logger import get_logger, setup_logging
from shop_insights.utils.config import get_config, validate_configuration
from shop_insights.utils.exceptions import ShopInsightsError


# Setup CLI-specific logging
cli_logger = get_logger(__name__)


class ShopInsightsCLI:
    """Command-line interface for Shop Insights operations."""

    def cmd_init_db(self, args) -> int:
        """Create (or recreate) all tables."""
        from shop_insights.database.connection import drop_db, init_db

        if args.drop:
            drop_db()
        init_db()
        print("✅ Database tables created")
        return 0

    def cmd_config(self, args) -> int:
        """Handle configuration commands."""
        if args.config_action == "validate":
            cli_logger.info("Validating configuration...")
            result = validate_configuration()

            if not result["valid"]:
                print("❌ Configuration is invalid")
                print(f"Error: {result['error']}")
                return 1

            print("✅ Configuration is valid")
            for warning in result["warnings"]:
                print(f"⚠️  {warning}")
            print(f"📊 Summary: {json.dumps(result['summary'], indent=2)}")
            return 0

        if args.config_action == "show":
            summary = validate_configuration().get("summary", {})
            print(json.dumps(summary, indent=2))
            return 0

        print(f"❌ Unknown config action: {args.config_action}")
        return 1

    def cmd_generate_key(self, args) -> int:
        """Print a new Fernet key for ENCRYPTION_MASTER_KEY."""
        from shop_insights.security.encryption import CredentialEncryptor

        print(CredentialEncryptor.generate_key())
        return 0

    def cmd_resync(self, args) -> int:
        """Run a blocking ingestion for one store."""
        from shop_insights.database.connection import get_db_context
        from shop_insights.database.operations import get_tenant_by_domain
        from shop_insights.services.ingestion_service import IngestionService

        with get_db_context() as db:
            tenant = get_tenant_by_domain(db, args.shop_domain)
            if tenant is None:
                print(f"❌ No active tenant for {args.shop_domain}")
                return 1

            service = IngestionService(tenant=tenant, db_session=db)
            try:
                stats = service.ingest_all(trigger="cli")
            finally:
                service.close()

        print(f"✅ Resync completed: {json.dumps(stats, indent=2)}")
        return 0

    def cmd_serve(self, args) -> int:
        """Start the API server."""
        import uvicorn

        config = get_config()
        uvicorn.run(
            "shop_insights.api.main:app",
            host=args.host or config.api_host,
            port=args.port or config.api_port,
            reload=args.reload,
        )
        return 0


def create_parser() -> argparse.ArgumentParser:
    """Create command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="shop-insights",
        description="Shop Insights CLI - database, configuration and ingestion operations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  shop-insights init-db                              # Create tables
  shop-insights config validate                      # Validate configuration
  shop-insights generate-key                         # New ENCRYPTION_MASTER_KEY
  shop-insights resync --shop-domain demo.myshopify.com
  shop-insights serve --port 8000
        """
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override LOG_LEVEL"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    init_parser = subparsers.add_parser("init-db", help="Create database tables")
    init_parser.add_argument("--drop", action="store_true", help="Drop existing tables first")

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_parser.add_argument(
        "config_action",
        choices=["validate", "show"],
        help="Configuration action to perform"
    )

    subparsers.add_parser("generate-key", help="Generate a credential encryption key")

    resync_parser = subparsers.add_parser("resync", help="Re-ingest one store's data")
    resync_parser.add_argument("--shop-domain", required=True, help="Store domain, e.g. demo.myshopify.com")

    serve_parser = subparsers.add_parser("serve", help="Run the API server")
    serve_parser.add_argument("--host", default=None)
    serve_parser.add_argument("--port", type=int, default=None)
    serve_parser.add_argument("--reload", action="store_true")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.log_level:
        os.environ["LOG_LEVEL"] = args.log_level
    setup_logging()

    if not args.command:
        parser.print_help()
        return 1

    cli = ShopInsightsCLI()
    handlers = {
        "init-db": cli.cmd_init_db,
        "config": cli.cmd_config,
        "generate-key": cli.cmd_generate_key,
        "resync": cli.cmd_resync,
        "serve": cli.cmd_serve,
    }

    try:
        return handlers[args.command](args)
    except KeyboardInterrupt:
        print("\n⏹️  Operation cancelled by user")
        return 130
    except ShopInsightsError as e:
        cli_logger.error(f"CLI operation failed: {e}")
        print(f"❌ Operation failed: {e.message}")
        return 1


def cli_entry_point():
    """Entry point for console script."""
    sys.exit(main())


if __name__ == "__main__":
    cli_entry_point()
