from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import typer
from rich.console import Console
from rich.table import Table

from captcha_memstore.base import ExpiredError, NotFoundError
from captcha_memstore.config import StoreConfig, load_config
from captcha_memstore.store import TTLStore

app = typer.Typer(help="In-memory challenge answer store. Config via MEMSTORE_* env vars or configs/memstore.yaml.")
console = Console()


@dataclass
class SoakResult:
    ok: int = 0
    not_found: int = 0
    expired: int = 0
    lost: int = 0


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", help="Python logging level."),
) -> None:
    logging.basicConfig(level=log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _load_cfg(expiration: float | None = None, sweep_interval: float | None = None) -> StoreConfig:
    cfg = load_config()
    overrides = {}
    if expiration is not None:
        overrides["expiration_seconds"] = expiration
    if sweep_interval is not None:
        overrides["sweep_interval_seconds"] = sweep_interval
    if overrides:
        cfg = StoreConfig.model_validate({**cfg.model_dump(), **overrides})
    return cfg


def _soak_worker(store: TTLStore, worker: int, ops: int) -> SoakResult:
    result = SoakResult()
    for n in range(ops):
        id = f"w{worker}-{n}"
        answer = f"{worker}:{n}"
        store.set(id, answer)
        for consume in (False, True):
            try:
                value = store.get(id, consume=consume)
            except NotFoundError:
                result.not_found += 1
                continue
            except ExpiredError:
                result.expired += 1
                continue
            if value == answer:
                result.ok += 1
            else:
                result.lost += 1
        try:
            store.get(id)
        except NotFoundError:
            result.not_found += 1
        except ExpiredError:
            # Expired before the consuming read, so it was never removed.
            result.expired += 1
        else:
            # A consumed id must not be readable again.
            result.lost += 1
    return result


def _run_soak(cfg: StoreConfig, threads: int, ops: int) -> SoakResult:
    total = SoakResult()
    with TTLStore(cfg) as store:
        with ThreadPoolExecutor(max_workers=threads) as pool:
            for result in pool.map(lambda w: _soak_worker(store, w, ops), range(threads)):
                total.ok += result.ok
                total.not_found += result.not_found
                total.expired += result.expired
                total.lost += result.lost
    return total


@app.command("show-config")
def show_config() -> None:
    """Print the resolved store configuration."""
    cfg = _load_cfg()
    table = Table(title="captcha-memstore config")
    table.add_column("Setting")
    table.add_column("Value")
    for key, value in cfg.model_dump().items():
        table.add_row(key, str(value))
    console.print(table)


@app.command()
def soak(
    threads: int = typer.Option(8, "--threads", min=1, help="Concurrent worker threads."),
    ops: int = typer.Option(1000, "--ops", min=1, help="Set/get rounds per thread."),
    expiration: float | None = typer.Option(None, "--expiration", help="Override expiration seconds."),
    sweep_interval: float | None = typer.Option(None, "--sweep-interval", help="Override sweep interval seconds."),
) -> None:
    """Hammer a store from several threads on disjoint ids and check for lost updates."""
    cfg = _load_cfg(expiration, sweep_interval)
    started = time.perf_counter()
    total = _run_soak(cfg, threads, ops)
    elapsed = time.perf_counter() - started

    table = Table(title=f"soak: {threads} threads x {ops} ops in {elapsed:.2f}s")
    table.add_column("Outcome")
    table.add_column("Count")
    table.add_row("ok", str(total.ok))
    table.add_row("not_found", str(total.not_found))
    table.add_row("expired", str(total.expired))
    table.add_row("lost", str(total.lost))
    console.print(table)
    if total.lost:
        raise typer.Exit(code=1)
