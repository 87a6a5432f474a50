from loguru import logger


async def log_notification(event: str, payload: dict):
    """Default notifier: writes the event to the log instead of delivering it."""
    logger.info(f"[notify] {event}: {payload}")
