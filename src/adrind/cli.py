import asyncio
import time

import click
from rich.console import Console
from rich.table import Table

from adrind.core.config import BufferConfig, FailurePolicy, RunnerConfig, SyncConfig
from adrind.core.use_cases.sync import SyncSummary
from adrind.log_setup import configure_logging
from adrind.sources.catalog import SOURCE_FACTORIES, default_sources

console = Console()


def _parse_cold_starts(values: tuple[str, ...]) -> dict[str, int]:
    out: dict[str, int] = {}
    for item in values:
        source_id, sep, height = item.partition("=")
        if not sep or not height.strip().isdigit():
            raise click.BadParameter(f"expected SOURCE=HEIGHT, got {item!r}", param_hint="--cold-start")
        if source_id not in SOURCE_FACTORIES:
            raise click.BadParameter(f"unknown source {source_id!r}", param_hint="--cold-start")
        out[source_id] = int(height)
    return out


def _summary_table(summary: SyncSummary) -> Table:
    table = Table(title="Sync summary", show_header=False)
    table.add_column("metric", style="bold")
    table.add_column("value", justify="right")
    rng = "-" if summary.to_block is None else f"{summary.from_block} → {summary.to_block}"
    table.add_row("range", rng)
    table.add_row("events processed", str(summary.processed))
    for source_id, n in sorted(summary.processed_by_source.items()):
        table.add_row(f"  {source_id}", str(n))
    table.add_row("logs fetched", str(summary.logs_fetched))
    table.add_row("windows (failed)", f"{summary.windows} ({summary.failed_windows})")
    table.add_row("unknown / malformed logs", f"{summary.unknown_logs} / {summary.malformed_logs}")
    table.add_row("persistence failures", str(summary.persistence_failures))
    table.add_row("has more", "yes" if summary.has_more else "no")
    table.add_row("duration", f"{summary.duration_s:.2f}s")
    return table


def sync_options(f):
    """Options shared by `sync` and `run`; every one can come from the environment."""
    options = [
        click.option("--rpc", "rpc_url", required=True, envvar="ADRIND_RPC_URL", help="RPC endpoint URL"),
        click.option("--db", "db_path", default="adrind.duckdb", show_default=True, envvar="ADRIND_DB_PATH"),
        click.option("--window-size", type=int, default=10, show_default=True, envvar="ADRIND_WINDOW_SIZE",
                     help="Blocks per eth_getLogs call"),
        click.option("--fan-out", type=int, default=3, show_default=True, envvar="ADRIND_FAN_OUT",
                     help="Windows fetched concurrently"),
        click.option("--checkpoint-every", type=int, default=100, show_default=True,
                     envvar="ADRIND_CHECKPOINT_EVERY", help="Groups between saved checkpoints"),
        click.option("--group-delay", type=float, default=0.5, show_default=True, envvar="ADRIND_GROUP_DELAY",
                     help="Seconds between fan-out groups"),
        click.option("--max-attempts", type=int, default=5, show_default=True, envvar="ADRIND_MAX_ATTEMPTS"),
        click.option("--backoff", type=float, default=1.0, show_default=True, envvar="ADRIND_BACKOFF",
                     help="Base retry delay in seconds (doubles per attempt)"),
        click.option("--failure-policy", type=click.Choice([p.value for p in FailurePolicy]),
                     default=FailurePolicy.FAIL_OPEN.value, show_default=True, envvar="ADRIND_FAILURE_POLICY"),
        click.option("--max-groups", type=int, default=None, envvar="ADRIND_MAX_GROUPS",
                     help="Stop a run after this many groups"),
        click.option("--buffer/--no-buffer", "buffer_enabled", default=False, show_default=True,
                     envvar="ADRIND_BUFFER", help="Write-behind buffering of event rows"),
        click.option("--flush-interval", type=float, default=1800.0, show_default=True,
                     envvar="ADRIND_FLUSH_INTERVAL", help="Seconds between automatic buffer flushes"),
        click.option("--cold-start", "cold_starts", multiple=True, metavar="SOURCE=HEIGHT",
                     help="Override a source's cold-start height; repeatable"),
        click.option("--timeout", "timeout_s", type=int, default=20, show_default=True, envvar="ADRIND_RPC_TIMEOUT"),
        click.option("--shutdown-timeout", type=float, default=10.0, show_default=True,
                     envvar="ADRIND_SHUTDOWN_TIMEOUT"),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def _build_config(**kw) -> RunnerConfig:
    try:
        sync = SyncConfig(
            window_size=kw["window_size"],
            fan_out=kw["fan_out"],
            checkpoint_every=kw["checkpoint_every"],
            inter_group_delay_s=kw["group_delay"],
            max_attempts=kw["max_attempts"],
            base_backoff_s=kw["backoff"],
            failure_policy=FailurePolicy(kw["failure_policy"]),
            max_groups=kw["max_groups"],
        )
        buffer = BufferConfig(enabled=kw["buffer_enabled"], flush_interval_s=kw["flush_interval"])
    except ValueError as e:
        raise click.UsageError(str(e)) from e
    return RunnerConfig(
        rpc_url=kw["rpc_url"],
        db_path=kw["db_path"],
        timeout_s=kw["timeout_s"],
        shutdown_timeout_s=kw["shutdown_timeout"],
        cold_start_overrides=_parse_cold_starts(kw["cold_starts"]),
        poll_interval_s=kw.get("interval", 300.0),
        sync=sync,
        buffer=buffer,
    )


@click.group()
@click.option("--log-level", default="INFO", show_default=True, envvar="ADRIND_LOG_LEVEL",
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
def cli(log_level: str) -> None:
    """adrind: multi-contract event log synchronizer."""
    configure_logging(log_level, console=console)


@cli.command("sync")
@sync_options
def sync_cmd(**kw) -> None:
    """Run one synchronization pass and print a summary."""
    from adrind.orchestration.runner import sync_once

    config = _build_config(**kw)
    t0 = time.time()
    summary = asyncio.run(sync_once(config))
    console.print(_summary_table(summary))
    console.print(f"[dim]done in {time.time() - t0:.2f}s[/]")


@cli.command("run")
@sync_options
@click.option("--interval", type=float, default=300.0, show_default=True, envvar="ADRIND_SYNC_INTERVAL",
              help="Seconds between runs once caught up")
def run_cmd(**kw) -> None:
    """Sync continuously until SIGINT/SIGTERM, then flush and close."""
    from adrind.orchestration.runner import SyncRunner, build_components, install_signal_handlers

    config = _build_config(**kw)

    async def main() -> int:
        stop = asyncio.Event()
        install_signal_handlers(stop)
        runner = SyncRunner(
            build_components(config),
            config,
            on_summary=lambda s: console.print(_summary_table(s)),
        )
        return await runner.run_forever(stop)

    runs = asyncio.run(main())
    console.print(f"[bold]stopped after {runs} run(s)[/]")


@cli.command("status")
@click.option("--db", "db_path", default="adrind.duckdb", show_default=True, envvar="ADRIND_DB_PATH")
def status_cmd(db_path: str) -> None:
    """Show per-source checkpoints."""
    from adrind.storage.checkpoints import CheckpointStore
    from adrind.storage.duckdb_store import DuckDBEventStore

    sources = default_sources()

    async def load():
        store = DuckDBEventStore(db_path)
        try:
            return await CheckpointStore(store).all([s.id for s in sources])
        finally:
            await store.close()

    checkpoints = asyncio.run(load())
    table = Table(title=f"Checkpoints ({db_path})")
    table.add_column("source")
    table.add_column("last synced", justify="right")
    table.add_column("backfill", justify="right")
    table.add_column("updated")
    for cp in checkpoints:
        updated = "never" if not cp.updated_at else time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(cp.updated_at))
        backfill = "-" if cp.last_backfill_block is None else str(cp.last_backfill_block)
        table.add_row(cp.source_id, str(cp.last_synced_block), backfill, updated)
    console.print(table)


@cli.command("sources")
def sources_cmd() -> None:
    """List the registered sources."""
    table = Table(title="Sources")
    table.add_column("id")
    table.add_column("name")
    table.add_column("address")
    table.add_column("cold start", justify="right")
    table.add_column("events", justify="right")
    for source in default_sources():
        table.add_row(
            source.id,
            source.display_name,
            source.address,
            str(source.cold_start_block),
            str(len(source.event_names)),
        )
    console.print(table)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
