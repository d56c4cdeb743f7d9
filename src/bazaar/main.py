"""
Main entrypoint for bazaar.

What it does:
- Loads runtime settings from `config/config.yaml` and environment variables
  (`BAZAAR_OWNER`, `PROMETHEUS_PORT`).
- Starts the Prometheus metrics server when enabled.
- Builds a Ledger owned by the configured owner and lists the configured catalog.
- With `OFFLINE_DEMO=1`, buys every listed item from a demo buyer account,
  withdraws the proceeds to the owner and writes parquet exports to `data/`.

Where it is used:
- Invoked by `python -m bazaar.main` or the `bazaar` console script.

Key related modules:
- `bazaar.config.loader.Settings` and `load_settings`
- `bazaar.ledger.Ledger`
- `bazaar.events.bus` (event delivery)
"""
import logging
import os
from dataclasses import asdict
from typing import Optional

from bazaar.config.loader import Settings, load_settings
from bazaar.ledger import Ledger, LedgerError
from bazaar.metrics.ledger import get_balance_gauge
from prometheus_client import start_http_server

DEMO_BUYER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"


def build_ledger(settings: Settings) -> Ledger:
    """Create the ledger and list the configured catalog as the owner."""
    ledger = Ledger(owner=settings.owner, name=settings.ledger_name)
    for entry in settings.catalog:
        ledger.list_item(
            settings.owner,
            entry.id,
            entry.name,
            entry.category,
            entry.image,
            entry.cost,
            entry.rating,
            entry.stock,
        )
    logging.info(f"ledger {settings.ledger_name} ready: owner={settings.owner} items={len(settings.catalog)}")
    return ledger


def run_demo(ledger: Ledger, settings: Settings, data_dir: str = "data") -> None:
    for entry in settings.catalog:
        try:
            env = ledger.buy(DEMO_BUYER, entry.id, entry.cost)
        except LedgerError as e:
            logging.warning(f"demo purchase of item {entry.id} failed: {e}")
            continue
        order = ledger.get_order(DEMO_BUYER, env.event.order_no)
        logging.info(f"order placed: buyer={DEMO_BUYER} order_no={env.event.order_no} {asdict(order)}")
    logging.info(f"ledger balance before withdraw: {ledger.get_balance()}")
    env = ledger.withdraw(settings.owner)
    logging.info(f"withdrawn: {env.event.amount} -> {settings.owner} (wallet now {ledger.wallets.balance_of(settings.owner)})")
    ledger.write_parquet(data_dir)
    logging.info("marketplace demo complete")


def start_metrics(settings: Settings, ledger: Ledger) -> Optional[int]:
    """Expose the ledger's metrics over HTTP; return the bound port or None.

    The balance series is seeded before the server starts so scrapers see the
    ledger from the first scrape. A port that cannot be bound is logged and
    the ledger keeps running without an exporter.
    """
    if not settings.metrics.enabled or os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        logging.info(f"metrics exporter disabled for ledger {ledger.name}")
        return None
    get_balance_gauge().labels(ledger.name).set(ledger.get_balance())
    port = settings.metrics.port
    try:
        start_http_server(port)
    except OSError as e:
        logging.warning(f"ledger {ledger.name}: cannot export metrics on :{port}: {e}")
        return None
    logging.info(f"ledger {ledger.name}: metrics on :{port}")
    return port


def main(config_path: Optional[str] = None) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    settings = load_settings(config_path or os.getenv("BAZAAR_CONFIG", "config/config.yaml"))
    logging.info(f"Ledger: {settings.ledger_name}, Owner: {settings.owner}")

    ledger = build_ledger(settings)
    start_metrics(settings, ledger)

    if os.getenv("OFFLINE_DEMO", "0") == "1":
        logging.info("OFFLINE_DEMO=1: running purchase/withdraw demo")
        run_demo(ledger, settings)


if __name__ == "__main__":
    main()
