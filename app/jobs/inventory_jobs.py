"""
Inventory Jobs

- Low stock scan: warn about active products at or below their threshold
"""

import logging
from datetime import datetime, timezone

from app.database import get_db_session
from app.services.inventory_service import InventoryService

logger = logging.getLogger(__name__)


async def check_low_stock() -> int:
    """
    Log a warning for every active product at or below its low-stock threshold.

    Returns the number of low-stock products found.
    """
    logger.info("Starting low stock check...")
    start_time = datetime.now(timezone.utc)

    async with get_db_session() as session:
        products = await InventoryService(session).get_low_stock_products()

    for product in products:
        logger.warning(
            f"Low stock: {product.name} ({product.id}) has {product.stock} left "
            f"(threshold {product.low_stock_threshold})"
        )

    duration = (datetime.now(timezone.utc) - start_time).total_seconds()
    logger.info(f"Low stock check completed in {duration:.2f}s: {len(products)} products flagged")
    return len(products)
