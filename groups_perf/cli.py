"""CLI interface for groups-perf using Click."""

import logging
import sys
from typing import Optional

import click

from . import __version__
from .config import LOG_LEVELS, MEMBER_SOURCES, PerfConfig
from .errors import ConfigError
from .runner import run_perf_test


def _setup_logging(level: str) -> None:
    """Log to stderr; stdout carries the report."""
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--groups-api-url", help="Groups API to test [env: GROUPS_API_URL]")
@click.option("--members-api-url", help="Members API to read real members from [env: MEMBERS_API_URL]")
@click.option("--members", "initial_member_size", type=int,
              help="Number of members to add to the test group [env: INITIAL_MEMBER_SIZE]")
@click.option("--member-source", type=click.Choice(MEMBER_SOURCES),
              help="Generate member ids or read them from the Members API [env: MEMBER_SOURCE]")
@click.option("--chunk-size", type=int, help="Members per bulk-add request, max 100 [env: CHUNK_SIZE]")
@click.option("--chunk-budget-ms", type=int,
              help="Maximum round-trip per chunk in milliseconds [env: CHUNK_BUDGET_MS]")
@click.option("--page-size", type=int, help="Members API page size, max 100 [env: MEMBERS_PAGE_SIZE]")
@click.option("--page-delay", type=float,
              help="Seconds to wait between Members API pages [env: MEMBERS_PAGE_DELAY]")
@click.option("--auth0-url", help="Token endpoint [env: AUTH0_URL]")
@click.option("--auth0-audience", help="Token audience [env: AUTH0_AUDIENCE]")
@click.option("--auth0-client-id", help="M2M client id [env: AUTH0_CLIENT_ID]")
@click.option("--auth0-client-secret", help="M2M client secret [env: AUTH0_CLIENT_SECRET]")
@click.option("--auth0-proxy-server-url", help="Auth0 proxy to request tokens through [env: AUTH0_PROXY_SERVER_URL]")
@click.option("--token-cache-time", type=int, help="Seconds to reuse an M2M token [env: TOKEN_CACHE_TIME]")
@click.option("--timeout", type=int, help="Per-request timeout in seconds [env: HTTP_TIMEOUT]")
@click.option("--log-level", type=click.Choice(LOG_LEVELS, case_sensitive=False),
              help="Logging verbosity [env: LOG_LEVEL]")
@click.option("--json", "json_output", is_flag=True, help="Print the report as JSON")
@click.option("--i-accept-side-effects", "accept_side_effects", is_flag=True,
              help="Confirm that a test group may be created and deleted on the target")
@click.version_option(version=__version__)
def main(json_output: bool, accept_side_effects: bool, log_level: Optional[str], **options):
    """Load test the bulk member endpoint of a Groups API.

    Creates a temporary test group, adds members to it in chunks of up to
    100 while timing every call against a latency budget, then deletes the
    group again.

    Examples:

    \b
      groups-perf --i-accept-side-effects
      GROUPS_API_URL=https://groups.example.com groups-perf --members 1000 --i-accept-side-effects
      groups-perf --member-source directory --members 500 --json --i-accept-side-effects
    """
    try:
        config = PerfConfig.load(log_level=log_level, **options)
    except ConfigError as e:
        click.echo(f"❌ {e}", err=True)
        sys.exit(1)

    _setup_logging(config.log_level)
    sys.exit(run_perf_test(config, json_output=json_output, accept_side_effects=accept_side_effects))


if __name__ == "__main__":
    main()
