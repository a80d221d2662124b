"""Command line entry point.

    callguard call GET /users/1 --base-url https://api.example.com --max-retries 3

Prints a JSON summary of the response on stdout. On failure the error kind,
status, attempt count and raw body are printed as JSON and the command exits
with status 1.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional, Tuple

import click

from callguard.client import Client
from callguard.config.settings import ClientConfig
from callguard.core.errors import CallError, MaxRetriesExceededError
from callguard.core.metadata import RequestMetadata
from callguard.core.response import ResponseEnvelope

logger = logging.getLogger(__name__)


def _split_pair(value: str, sep: str, option: str) -> Tuple[str, str]:
    if sep not in value:
        raise click.BadParameter(f"expected KEY{sep}VALUE, got {value!r}", param_hint=option)
    key, _, val = value.partition(sep)
    return key.strip(), val.strip()


def _success_payload(envelope: ResponseEnvelope[Any], raw: bool) -> Dict[str, Any]:
    return {
        "success": True,
        "status": envelope.status,
        "attempts": envelope.attempts,
        "latency_ms": int(envelope.latency * 1000),
        "headers": dict(envelope.headers),
        "data": envelope.raw_body if raw else envelope.data,
    }


def _error_payload(error: CallError) -> Dict[str, Any]:
    attempts = error.attempts if isinstance(error, MaxRetriesExceededError) else 1
    return {
        "success": False,
        "error_type": error.kind.value,
        "error": str(error),
        "status": error.status,
        "attempts": attempts,
        "raw_response": error.raw_response,
    }


@click.group()
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="TOML config file (overrides CALLGUARD_CONFIG_FILE).",
)
@click.option("--verbose", "-v", is_flag=True, help="Log call events to stderr.")
@click.pass_context
def main(ctx: click.Context, config_file: Optional[str], verbose: bool) -> None:
    """Make HTTP calls with retries and rate-limit handling."""
    try:
        config = ClientConfig.from_env(config_file)
    except CallError as e:
        raise click.ClickException(str(e)) from e
    if verbose:
        config.log_level = "DEBUG"
        config.setup_logging()
    ctx.obj = config


@main.command("call")
@click.argument("method")
@click.argument("path")
@click.option("--base-url", default=None, help="Base URL (overrides config).")
@click.option("--header", "-H", "headers", multiple=True, help="Header as NAME:VALUE.")
@click.option("--param", "-p", "params", multiple=True, help="Query parameter as KEY=VALUE.")
@click.option("--data", "-d", default=None, help="JSON request body.")
@click.option("--max-retries", type=int, default=None, help="Retries after the first attempt.")
@click.option("--timeout", type=float, default=None, help="Per-attempt timeout in seconds.")
@click.option("--raw", is_flag=True, help="Print the raw body instead of parsed JSON.")
@click.pass_obj
def call_cmd(
    config: ClientConfig,
    method: str,
    path: str,
    base_url: Optional[str],
    headers: Tuple[str, ...],
    params: Tuple[str, ...],
    data: Optional[str],
    max_retries: Optional[int],
    timeout: Optional[float],
    raw: bool,
) -> None:
    """Send METHOD to PATH and print the result as JSON."""
    if base_url:
        config.base_url = base_url
    if timeout is not None:
        config.timeout = timeout
    if max_retries is not None:
        config.retry.max_retries = max_retries
        if config.retry.strategy == "none" and max_retries > 0:
            config.retry.strategy = "exponential"

    body: Any = None
    if data is not None:
        try:
            body = json.loads(data)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"not valid JSON: {e}", param_hint="--data") from e

    try:
        metadata = RequestMetadata(method, path)
        for header in headers:
            metadata.with_header(*_split_pair(header, ":", "--header"))
        for param in params:
            metadata.with_query_param(*_split_pair(param, "=", "--param"))
        envelope = asyncio.run(_run(config, metadata, body, raw))
    except CallError as e:
        logger.debug("Call failed: %s", e)
        click.echo(json.dumps(_error_payload(e), indent=2))
        raise SystemExit(1) from e

    click.echo(json.dumps(_success_payload(envelope, raw), indent=2, default=str))


async def _run(
    config: ClientConfig,
    metadata: RequestMetadata,
    body: Any,
    raw: bool,
) -> ResponseEnvelope[Any]:
    async with Client.from_config(config) as client:
        return await client.call(metadata, body, response_type=str if raw else Any)
