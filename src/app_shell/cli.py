import argparse
import logging
import os
import sys
from pathlib import Path

from src.adapters.sqlite.migrator import DEFAULT_MIGRATIONS_DIR, SQLiteMigrator
from src.adapters.sqlite_db import SQLiteUnitOfWork
from src.api.deps import build_email_adapter
from src.components.newsletter.component import run_publish
from src.components.newsletter.models import NewsletterIssue, PublishInput
from src.config.loader import CONFIG_PATH_ENV, configure_logging, load_settings
from src.config.models import Settings

logger = logging.getLogger("cli")


def get_settings(args: argparse.Namespace) -> Settings:
    try:
        settings = load_settings(Path(args.config) if args.config else None)
    except (FileNotFoundError, ValueError) as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error("%s", e)
        sys.exit(1)
    configure_logging(settings.logging)
    return settings


def handle_serve(settings: Settings, args: argparse.Namespace) -> None:
    import uvicorn

    if args.config:
        # The app loads its own settings; point it at the same file
        os.environ[CONFIG_PATH_ENV] = str(Path(args.config).resolve())

    uvicorn.run(
        "src.api.main:app",
        host=args.host or settings.application.host,
        port=args.port or settings.application.port,
        log_level=settings.logging.level.lower(),
    )


def handle_migrate(settings: Settings, args: argparse.Namespace) -> None:
    database = settings.database
    applied = SQLiteMigrator(
        database.path, database.migrations_dir or DEFAULT_MIGRATIONS_DIR
    ).run_migrations()
    print(f"Applied {len(applied)} migration(s) to {database.path}.")


def handle_publish(settings: Settings, args: argparse.Namespace) -> None:
    issue = NewsletterIssue(
        title=args.title,
        html_body=Path(args.html_file).read_text(),
        text_body=Path(args.text_file).read_text(),
    )
    database = settings.database

    def uow_factory() -> SQLiteUnitOfWork:
        return SQLiteUnitOfWork(database.path, timeout=database.busy_timeout_seconds)

    email_adapter = build_email_adapter(settings)
    try:
        result = run_publish(PublishInput(issue=issue), uow_factory, email_adapter)
    finally:
        email_adapter.close()

    if not result.success:
        logger.error("Publishing failed: confirmed subscribers could not be fetched.")
        sys.exit(1)

    print(
        f"Attempted {result.attempted}, delivered {result.delivered}, "
        f"skipped {len(result.skipped)}, failed {len(result.failed)}."
    )
    for issue_record in result.skipped:
        print(f"  skipped {issue_record.subscriber_id}: {issue_record.reason}")
    for issue_record in result.failed:
        print(f"  failed  {issue_record.subscriber_id}: {issue_record.reason}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Newsletter service CLI")
    parser.add_argument("--config", help="Path to configuration.yaml")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", help="Override application.host")
    serve_parser.add_argument("--port", type=int, help="Override application.port")

    subparsers.add_parser("migrate", help="Apply pending database migrations")

    publish_parser = subparsers.add_parser(
        "publish", help="Send an issue to all confirmed subscribers"
    )
    publish_parser.add_argument("--title", required=True, help="Email subject")
    publish_parser.add_argument("--html-file", required=True, help="HTML body file")
    publish_parser.add_argument("--text-file", required=True, help="Plain text body file")

    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    settings = get_settings(args)

    handlers = {
        "serve": handle_serve,
        "migrate": handle_migrate,
        "publish": handle_publish,
    }
    handlers[args.command](settings, args)


if __name__ == "__main__":
    main()
