import httpx
import asyncio
import logging
from portal_api.core.config import settings
from portal_api.core.metrics import webhook_deliveries

logger = logging.getLogger(__name__)


async def send_webhook(payload: dict, retries: int | None = None) -> bool:
    """POST an event to WEBHOOK_URL with exponential back-off. No-op when unset."""
    if not settings.WEBHOOK_URL:
        logger.debug(f"No webhook configured, skipping {payload.get('event')}")
        return False

    if retries is None:
        retries = settings.WEBHOOK_RETRIES
    
    event = payload.get("event")
    backoff = 1.0
    
    for attempt in range(1, retries + 1):
        try:
            async with httpx.AsyncClient(timeout=settings.WEBHOOK_TIMEOUT) as client:
                response = await client.post(settings.WEBHOOK_URL, json=payload)
                
                if 200 <= response.status_code < 300:
                    webhook_deliveries.labels(status="success", retry_count=str(attempt - 1)).inc()
                    logger.info(f"Webhook {event} delivered for customer {payload.get('customer_id')}")
                    return True
                logger.warning(
                    f"Webhook {event} failed (attempt {attempt}/{retries}): "
                    f"status {response.status_code}"
                )
        except httpx.TimeoutException:
            logger.warning(f"Webhook {event} timeout (attempt {attempt}/{retries})")
        except httpx.HTTPError as e:
            logger.warning(f"Webhook {event} error (attempt {attempt}/{retries}): {e}")
        
        if attempt < retries:
            await asyncio.sleep(backoff)
            backoff *= 2.0
    
    webhook_deliveries.labels(status="failed", retry_count=str(retries)).inc()
    logger.error(f"Webhook {event} failed after {retries} attempts")
    return False
