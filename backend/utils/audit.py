import logging
from datetime import datetime

logger = logging.getLogger(__name__)


async def log_superuser_activity(
    db,
    user_id: str,
    action: str,
    target: str | None = None,
    details: dict | None = None,
):
    await db.superuser_activity.insert_one({
        "user_id": user_id,
        "action": action,
        "target": target,
        "details": details or {},
        "created_at": datetime.utcnow(),
    })
    logger.info("SUPERUSER_ACTIVITY user=%s action=%s target=%s", user_id, action, target)
