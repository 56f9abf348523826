"""CLI entry point for xhark."""

import logging

import click

from xhark.catalog import Catalog
from xhark.config import Config, resolve_spec_source
from xhark.errors import XharkError
from xhark.log import configure_logging
from xhark.session.controller import Session
from xhark.session.credentials import CredentialStore
from xhark.tui.app import run_app

logger = logging.getLogger(__name__)

EXIT_LOAD_ERROR = 2
EXIT_RUNTIME_ERROR = 1


@click.command()
@click.option("--spec-url", default="", help="OpenAPI spec URL (http/https).")
@click.option("--spec-file", default="", help="Path to a local OpenAPI spec file.")
@click.option("--base-url", default="", help="Base URL for executing requests (e.g. http://localhost:8000).")
@click.pass_context
def main(ctx: click.Context, spec_url: str, spec_file: str, base_url: str):
    """xhark - browse and call an HTTP API from its OpenAPI description."""
    config = Config()
    configure_logging(config.debug, config.log_file)

    source = resolve_spec_source(spec_url, spec_file, config)
    if not source:
        click.echo(
            "spec required (use --spec-url or --spec-file, or set XHARK_SPEC_URL/XHARK_SPEC_FILE)",
            err=True,
        )
        ctx.exit(EXIT_LOAD_ERROR)

    try:
        catalog = Catalog.load(source, base_url=base_url or config.base_url, timeout=config.load_timeout)
    except XharkError as e:
        logger.error("startup failed: %s", e)
        click.echo(str(e), err=True)
        ctx.exit(EXIT_LOAD_ERROR)

    session = Session(
        catalog,
        credentials=CredentialStore(base_url=catalog.base_url, timeout=config.token_timeout),
        request_timeout=config.request_timeout,
        editor_command=config.editor,
    )
    try:
        run_app(session)
    except Exception as e:
        logger.exception("unexpected error")
        click.echo(str(e), err=True)
        ctx.exit(EXIT_RUNTIME_ERROR)
