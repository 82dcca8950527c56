"""
Check inventory status - stock levels, expiring products and unread alerts.

Usage:
    python scripts/check_inventory_status.py              # print the status report
    python scripts/check_inventory_status.py --recompute  # also append fresh alerts first
    python scripts/check_inventory_status.py --watch      # recompute alerts on every product change
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.logger import setup_logging
from config.settings import load_settings
from repositories.client import create_store
from repositories.inventory_store import InventoryStore, StoreError
from services.alert_service import AlertEngine
from services.dashboard_service import build_dashboard

logger = logging.getLogger(__name__)


async def print_status(store: InventoryStore, engine: AlertEngine) -> None:
    """Print a stock and alert summary for every product."""

    products = await store.list_products()
    sales = await store.list_sales()
    alerts = await store.list_alerts()

    summary = build_dashboard(
        products,
        sales,
        alerts,
        as_of=engine.now(),
        days_ahead=engine.days_ahead,
        low_stock_threshold=engine.low_stock_threshold,
    )

    print("=" * 50)
    print("INVENTORY STATUS")
    print("=" * 50)
    print(f"Products:                  {summary.product_count}")
    print(f"Out of stock:              {len(summary.out_of_stock_products)}")
    print(f"Low stock (<= {engine.low_stock_threshold}):          {len(summary.low_stock_products)}")
    print(f"Expiring in {engine.days_ahead} days:         {len(summary.expiring_products)}")
    print(f"Unread alerts:             {summary.unread_alert_count}")
    print(f"Sales today:               {summary.sales_today}")
    print(f"Revenue today (with tax):  {summary.revenue_today_with_tax:.2f}")
    print("=" * 50)

    print("\nAttention needed:")
    print("-" * 50)
    pending = engine.derive_alerts(products)
    if not pending:
        print("Nothing to report")
    for alert in sorted(pending, key=lambda a: (a.alert_type.value, a.product_name)):
        print(f"[{alert.alert_type.value}] {alert.message}")
    print("-" * 50)


async def run(recompute: bool, watch: bool) -> int:
    settings = load_settings()
    setup_logging(settings)

    store = await create_store(settings)
    engine = AlertEngine(
        store,
        days_ahead=settings.expiry_window_days,
        low_stock_threshold=settings.low_stock_threshold,
    )

    try:
        if watch:
            logger.info("Watching products for alert conditions (Ctrl+C to stop)")
            await engine.watch_products()
            return 0

        if recompute:
            created = await engine.recompute_from_store()
            print(f"Appended {len(created)} alert(s)")

        await print_status(store, engine)
        return 0
    except StoreError as e:
        logger.error("Inventory store error", extra={"error": str(e)})
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await store.close()


def main() -> int:
    parser = argparse.ArgumentParser(description="Print inventory status and stock alerts")
    parser.add_argument("--recompute", action="store_true", help="append alerts for current conditions first")
    parser.add_argument("--watch", action="store_true", help="recompute alerts on every product change until stopped")
    args = parser.parse_args()

    try:
        return asyncio.run(run(recompute=args.recompute, watch=args.watch))
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    sys.exit(main())
