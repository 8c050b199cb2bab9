import asyncio
import json
import logging
from typing import List, Optional

import typer

from tokenscout.config.settings import Settings
from tokenscout.services.token_service import TokenService
from tokenscout.storage.models import TradeToken
from tokenscout.utils.shortname import ShortNameFilter

log = logging.getLogger(__name__)

app = typer.Typer(help="Discover, enrich and rank new Base tokens from the command line")


def _run(op):
    async def _inner():
        service = TokenService.build(Settings.from_env())
        try:
            return await op(service)
        finally:
            await service.close()

    return asyncio.run(_inner())


def _echo(payload) -> None:
    typer.echo(json.dumps(payload, indent=2, default=str))


@app.callback()
def configure(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(shortname)s: %(message)s",
    )
    for handler in logging.getLogger().handlers:
        handler.addFilter(ShortNameFilter())


@app.command("discover")
def discover(
    blocks: Optional[int] = typer.Option(None, min=1, help="Blocks to scan (capped by SCAN_BATCH_SIZE)"),
    full: bool = typer.Option(False, "--full", help="Ignore the cursor and scan back from the head"),
):
    """Run one discovery batch inline."""
    log.info(f"[cli] Starting discovery (incremental={not full}, blocks={blocks})")
    outcome = _run(lambda s: s.trigger_discovery(incremental=not full, blocks_to_scan=blocks))
    _echo(outcome.to_dict())
    if not outcome.success:
        raise typer.Exit(code=1)


@app.command("refresh")
def refresh(
    addresses: Optional[List[str]] = typer.Argument(None, help="Token addresses; omit for a scheduled-style refresh"),
    limit: Optional[int] = typer.Option(None, min=1, help="How many tokens the scheduled refresh covers"),
):
    """Force-refresh the given tokens, or the top of the trending list."""
    try:
        if addresses:
            results = _run(lambda s: s.refresh_tokens(addresses))
            _echo([r.to_dict() for r in results])
        else:
            summary = _run(lambda s: s.scheduled_refresh(limit))
            _echo(summary.record())
    except ValueError as e:
        log.error(f"[cli] {e}")
        raise typer.Exit(code=2)


@app.command("trending")
def trending(limit: Optional[int] = typer.Option(None, min=1)):
    """Listed tokens ranked by 24h volume."""
    tokens = _run(lambda s: s.trending(limit))
    _echo([t.to_dict() for t in tokens])


@app.command("status")
def status():
    """Cursor, cache and connectivity summary."""
    _echo(_run(lambda s: s.system_status()).to_dict())


@app.command("risk")
def risk(address: str = typer.Argument(..., help="Token address")):
    """Honeypot-style red flags for one token."""
    try:
        result = _run(lambda s: s.token_risk(address))
    except ValueError as e:
        log.error(f"[cli] {e}")
        raise typer.Exit(code=2)
    _echo(result.to_dict())


@app.command("pools")
def pools(
    token: Optional[str] = typer.Argument(None, help="Token address; omit to list recently created pools"),
    blocks: Optional[int] = typer.Option(None, min=1, help="Blocks to look back for recent pools"),
):
    """A token's Uniswap V3 pools, or the pools created in the last few blocks."""
    try:
        found = _run(lambda s: s.token_pools(token) if token else s.recent_pools(blocks))
    except ValueError as e:
        log.error(f"[cli] {e}")
        raise typer.Exit(code=2)
    _echo([p.to_dict() for p in found])


@app.command("quote")
def quote(
    token_in: str = typer.Option(..., help="0x... address of the token sold"),
    token_out: str = typer.Option(..., help="0x... address of the token bought"),
    amount: str = typer.Option(..., help="Amount in, human units"),
    decimals_in: int = typer.Option(18),
    decimals_out: int = typer.Option(18),
    symbol_in: str = typer.Option("IN"),
    symbol_out: str = typer.Option("OUT"),
):
    """Best quote across Uniswap V3 and Aerodrome."""
    t_in = TradeToken(address=token_in, symbol=symbol_in, decimals=decimals_in)
    t_out = TradeToken(address=token_out, symbol=symbol_out, decimals=decimals_out)
    try:
        best = _run(lambda s: s.best_quote(t_in, t_out, amount))
    except ValueError as e:
        log.error(f"[cli] {e}")
        raise typer.Exit(code=2)
    _echo(best.to_dict() if best else None)


def main():
    app()


if __name__ == "__main__":
    main()
