"""Entry point for the indicator and signal engine.

Wires settings, logging, the Bybit market data source, the log renderer and
the orchestrator, then runs until SIGINT/SIGTERM.

Component wiring order:
1. AppSettings (configuration)
2. Logging setup
3. BybitMarketData (public market data via ccxt)
4. LogRenderer (stands in for the dashboard view)
5. Orchestrator (agent + open interest pipelines)
"""

import asyncio
import signal

from byagent.config import AppSettings
from byagent.exchange.bybit_client import BybitMarketData
from byagent.logging import get_logger, setup_logging
from byagent.orchestrator import Orchestrator
from byagent.render import LogRenderer


async def run() -> None:
    """Run both refresh pipelines until a shutdown signal arrives."""
    settings = AppSettings()

    setup_logging(settings.log_level)
    logger = get_logger("byagent.main")

    source = BybitMarketData(settings.exchange)
    renderer = LogRenderer()
    orchestrator = Orchestrator(
        settings=settings,
        source=source,
        publish_agent=renderer.on_agent_update,
        publish_oi=renderer.on_oi_update,
    )

    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown.set)

    try:
        await source.connect()
        await orchestrator.start()
        logger.info("byagent_started", symbol=orchestrator.symbol)
        await shutdown.wait()
    finally:
        await orchestrator.stop()
        await source.close()
        logger.info("byagent_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
