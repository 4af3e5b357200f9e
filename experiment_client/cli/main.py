"""CLI commands for fetching experiment variants."""

import asyncio
import json
import logging
import sys
import uuid

import click
import structlog
from pydantic import ValidationError

from experiment_client.cache.models import CachingOptions
from experiment_client.factory import initialize_remote_with_caching
from experiment_client.fetch.config import RemoteEvaluationConfig
from experiment_client.fetch.constants import LIBRARY_VERSION
from experiment_client.fetch.errors import FetchError
from experiment_client.fetch.metrics import FetchMetrics
from experiment_client.models import ExperimentUser, FetchOptions, Variant
from experiment_client.observability.logging import (
    bind_request_context,
    configure_logging,
)
from experiment_client.settings import AppSettings, get_settings


logger = structlog.get_logger()

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _setup_logging(log_level: str, json_logs: bool) -> None:
    configure_logging(
        level=getattr(logging, log_level),
        output=sys.stderr,
        json_format=json_logs,
    )
    bind_request_context(str(uuid.uuid4()))


def _serialize_variants(variants: dict[str, Variant]) -> str:
    return json.dumps(
        {
            key: variant.model_dump(mode="json", by_alias=True, exclude_none=True)
            for key, variant in sorted(variants.items())
        },
        indent=2,
        sort_keys=True,
    )


def _load_config() -> tuple[AppSettings, RemoteEvaluationConfig, CachingOptions]:
    """Load settings from the environment, exiting on invalid values."""
    try:
        settings = get_settings()
        return settings, settings.to_remote_config(), settings.to_caching_options()
    except ValidationError as e:
        click.echo("Configuration validation failed:", err=True)
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"]) or "settings"
            click.echo(f"  - {location}: {error['msg']}", err=True)
        sys.exit(2)


async def _fetch_variants(
    remote_config: RemoteEvaluationConfig,
    caching_options: CachingOptions,
    deployment_key: str,
    user: ExperimentUser,
    options: FetchOptions,
) -> dict[str, Variant]:
    log = logger.bind(component="cli")
    client = initialize_remote_with_caching(
        deployment_key,
        remote_config,
        caching_options,
        logger=log,
    )
    async with client:
        return await client.fetch(user, options)


@click.group()
@click.version_option(version=LIBRARY_VERSION)
def cli() -> None:
    """Experiment variant fetch client."""


@cli.command()
@click.option("--user-id", default=None, help="User identifier to evaluate.")
@click.option("--device-id", default=None, help="Device identifier to evaluate.")
@click.option(
    "--flag-key",
    "flag_keys",
    multiple=True,
    help="Flag key to evaluate (repeatable). Omit to evaluate all flags.",
)
@click.option(
    "--no-track",
    is_flag=True,
    default=False,
    help="Disable exposure and assignment tracking.",
)
@click.option(
    "--deployment-key",
    default=None,
    help="Deployment key. Defaults to EXPERIMENT_DEPLOYMENT_KEY.",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
)
@click.option("--json-logs/--console-logs", default=True, show_default=True)
def fetch(  # noqa: PLR0913
    user_id: str | None,
    device_id: str | None,
    flag_keys: tuple[str, ...],
    no_track: bool,
    deployment_key: str | None,
    log_level: str,
    json_logs: bool,
) -> None:
    """Fetch variants for a user and print them as JSON."""
    _setup_logging(log_level.upper(), json_logs)
    settings, remote_config, caching_options = _load_config()

    key = deployment_key or settings.deployment_key
    if not key:
        click.echo(
            "Error: no deployment key (use --deployment-key or "
            "EXPERIMENT_DEPLOYMENT_KEY)",
            err=True,
        )
        sys.exit(2)

    if not user_id and not device_id:
        click.echo("Error: provide --user-id and/or --device-id", err=True)
        sys.exit(2)

    user = ExperimentUser(user_id=user_id, device_id=device_id)
    options = FetchOptions(
        flag_keys=list(flag_keys) or None,
        tracks_exposure=not no_track,
        tracks_assignment=not no_track,
    )

    try:
        variants = asyncio.run(
            _fetch_variants(remote_config, caching_options, key, user, options)
        )
    except FetchError as e:
        click.echo(f"Error: {e.message} [{e.error_class.value}]", err=True)
        sys.exit(1)

    click.echo(_serialize_variants(variants))
    logger.debug("fetch_metrics", **FetchMetrics.get_instance().to_dict())


@cli.command("show-config")
def show_config() -> None:
    """Show the effective configuration loaded from the environment."""
    settings, remote, caching = _load_config()

    click.echo(f"Server URL: {remote.get_server_url()}")
    click.echo(f"Deployment key set: {bool(settings.deployment_key)}")
    click.echo(f"Fetch timeout: {remote.fetch_timeout_ms}ms")
    policy = remote.retry_policy
    click.echo(
        f"Retries: {policy.max_retries} "
        f"(backoff {policy.min_delay_ms}-{policy.max_delay_ms}ms, "
        f"x{policy.backoff_scalar})"
    )
    click.echo(f"Cache prefix: {caching.cache_key_prefix}")
    click.echo(f"Cache expiration: {caching.absolute_expiration}")
    click.echo(f"Local cache expiration: {caching.local_cache_expiration}")


if __name__ == "__main__":
    cli()
