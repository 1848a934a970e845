import asyncio

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel

from .application.use_cases import inspect_status, run_operator
from .config import LOG_FORMATS, SUBMIT_MODES, Settings, build_settings
from .domain.errors import ConfigError
from .logging_utils import setup_logging

console = Console()


def chain_options(f):
    """Options shared by every command; each can also come from the environment."""
    opts = [
        click.option("--rpc-url", envvar="RPC_URL", help="Source chain JSON-RPC endpoint"),
        click.option("--chain-id", envvar="CHAIN_ID", type=int, help="Chain id of the source chain"),
        click.option("--contract", envvar="CONTRACT_ADDRESS", help="Beacon oracle contract address"),
        click.option("--block-interval", envvar="BLOCK_INTERVAL", type=int, help="Blocks between anchored boundaries"),
        click.option("--max-lookback", envvar="MAX_LOOKBACK_INTERVALS", type=int, default=64, show_default=True,
                     help="Boundaries probed when looking for the last anchored one"),
        click.option("--rpc-timeout", envvar="RPC_TIMEOUT_SECONDS", type=float, default=20.0, show_default=True),
        click.option("--log-level", envvar="LOG_LEVEL", default="INFO", show_default=True),
        click.option("--log-format", envvar="LOG_FORMAT", type=click.Choice(LOG_FORMATS), default="rich",
                     show_default=True),
    ]
    for opt in reversed(opts):
        f = opt(f)
    return f


def _settings(**kwargs) -> Settings:
    try:
        return build_settings(**kwargs)
    except ConfigError as e:
        raise click.ClickException(str(e))


@click.group()
def cli():
    """beacon-anchor: keeps a beacon oracle contract fed with block timestamps."""


@cli.command("run")
@chain_options
@click.option("--mode", envvar="SUBMIT_MODE", type=click.Choice(SUBMIT_MODES), default=None,
              help="Sign and broadcast ourselves, or hand the call to the relayer  [default: direct]")
@click.option("--self-relay", envvar="SELF_RELAY", default=None, hidden=True,
              help="Legacy switch: true selects relay mode, false direct mode")
@click.option("--loop-interval", envvar="LOOP_INTERVAL_SECONDS", type=float, default=300.0, show_default=True,
              help="Seconds to sleep between cycles")
@click.option("--receipt-timeout", envvar="RECEIPT_TIMEOUT_SECONDS", type=float, default=180.0, show_default=True,
              help="Seconds to wait for inclusion / relayer confirmation")
@click.option("--private-key", envvar="PRIVATE_KEY", help="Signing key (direct mode)")
@click.option("--relayer-url", envvar="SECURE_RELAYER_ENDPOINT", help="Relayer endpoint (relay mode)")
@click.option("--relayer-api-key", envvar="SECURE_RELAYER_API_KEY", help="Relayer API key (relay mode)")
@click.option("--once/--forever", default=False, show_default=True, help="Run a single cycle and exit")
def run_cmd(rpc_url, chain_id, contract, block_interval, max_lookback, rpc_timeout, log_level, log_format,
            mode, self_relay, loop_interval, receipt_timeout, private_key, relayer_url, relayer_api_key, once):
    """Run the anchoring loop until interrupted."""
    settings = _settings(
        mode=mode, self_relay=self_relay, rpc_url=rpc_url, chain_id=chain_id, contract=contract,
        block_interval=block_interval,
        loop_interval_seconds=loop_interval, rpc_timeout_seconds=rpc_timeout,
        receipt_timeout_seconds=receipt_timeout, max_lookback=max_lookback,
        private_key=private_key, relayer_url=relayer_url, relayer_api_key=relayer_api_key,
        log_level=log_level, log_format=log_format,
    )
    setup_logging(settings.log_level, settings.log_format)
    try:
        asyncio.run(run_operator(settings, once=once))
    except ConfigError as e:
        raise click.ClickException(str(e))
    except KeyboardInterrupt:
        console.print("[yellow]interrupted[/]")


@cli.command("status")
@chain_options
def status_cmd(rpc_url, chain_id, contract, block_interval, max_lookback, rpc_timeout, log_level, log_format):
    """Show what the next cycle would do, without submitting anything."""
    settings = _settings(
        rpc_url=rpc_url, chain_id=chain_id, contract=contract, block_interval=block_interval,
        rpc_timeout_seconds=rpc_timeout, max_lookback=max_lookback,
        log_level=log_level, log_format=log_format, require_credentials=False,
    )
    setup_logging(settings.log_level, settings.log_format)
    report = asyncio.run(inspect_status(settings))

    c = report.candidate
    lines = [
        f"[bold]contract[/]: {settings.contract}  [bold]interval[/]: {settings.block_interval} blocks",
        f"[bold]latest block[/]: {report.latest_height if report.latest_height is not None else '?'}",
        f"[bold]last anchored boundary[/]: {report.last_boundary if report.last_boundary is not None else 'none found'}",
        f"[bold]candidate[/]: {f'{c.boundary} (timestamp {c.block_timestamp})' if c else '-'}",
        f"[bold]next cycle[/]: {_describe(report.status)}",
    ]
    if report.error:
        lines.append(f"[red]error[/]: {report.error}")
    console.print(Panel("\n".join(lines), title="beacon-anchor status", expand=False))
    if report.status == "read_failed":
        raise SystemExit(1)


_DESCRIPTIONS = {
    "dry_run": "[green]would submit[/]",
    "already_anchored": "nothing, candidate already anchored",
    "nothing_to_do": "nothing, next boundary not reached",
    "too_fresh": "nothing, candidate inside the safety margin",
    "read_failed": "[red]skip, chain read failed[/]",
}


def _describe(status: str) -> str:
    return _DESCRIPTIONS.get(status, status)


def main():
    load_dotenv()
    cli()


if __name__ == "__main__":
    main()
