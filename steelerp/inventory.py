import logging
import math
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from steelerp.formatting import as_utc, fixed, to_number
from steelerp.models import InventoryItem, InventoryTransaction

logger = logging.getLogger(__name__)

USAGE_WINDOW_DAYS = 30
MIN_REORDER_QUANTITY = 10
CONSUMING_TYPES = ("issue_to_project", "scrap", "wastage", "stock_out")


def reorder_quantity(min_stock: int) -> int:
    return max(min_stock * 2, MIN_REORDER_QUANTITY)


def build_low_stock_alerts(db: Session, now: Optional[datetime] = None) -> dict:
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(days=USAGE_WINDOW_DAYS)

    items = [
        item
        for item in db.query(InventoryItem).order_by(InventoryItem.name).all()
        if (item.min_stock or 0) > 0 and item.current_stock < item.min_stock
    ]
    usage: dict[str, int] = defaultdict(int)
    if items:
        for move in db.query(InventoryTransaction).filter(
            InventoryTransaction.item_id.in_([item.id for item in items]),
            InventoryTransaction.type.in_(CONSUMING_TYPES),
        ):
            if as_utc(move.created_at) > since:
                usage[move.item_id] += move.quantity

    alerts = []
    for item in items:
        daily_usage = usage[item.id] / USAGE_WINDOW_DAYS
        quantity = reorder_quantity(item.min_stock)
        alerts.append(
            {
                "itemId": item.id,
                "code": item.code,
                "name": item.name,
                "category": item.category,
                "unit": item.unit,
                "currentStock": item.current_stock,
                "minStock": item.min_stock,
                "maxStock": item.min_stock * 3,
                "stockout": item.current_stock <= 0,
                "daysToStockout": math.ceil(item.current_stock / daily_usage) if daily_usage > 0 else None,
                "costPrice": to_number(item.cost_price),
                "reorderQuantity": quantity,
                "suggestedCost": to_number(item.cost_price) * quantity,
                "avgDailyUsage": fixed(daily_usage),
            }
        )
    alerts.sort(key=lambda alert: 999 if alert["daysToStockout"] is None else alert["daysToStockout"])
    logger.debug("%d items below minimum stock", len(alerts))

    return {
        "itemsNeedingReorder": len(alerts),
        "criticalItems": sum(1 for alert in alerts if alert["stockout"]),
        "alerts": alerts,
    }
