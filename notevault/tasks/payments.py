"""
Payment Background Tasks
"""
from notevault.core.logging import get_logger
from notevault.worker import celery_app

logger = get_logger(__name__)


@celery_app.task(name="notevault.tasks.payments.release_escrow")
def release_escrow() -> dict:
    """
    Release seller earnings whose escrow hold has expired.
    Runs hourly via Celery Beat.
    """
    import asyncio

    from notevault.core.database import async_session_maker
    from notevault.modules.wallet.service import WalletService

    async def _release():
        async with async_session_maker() as session:
            released, amount = await WalletService(session).release_escrow()
            logger.info("Escrow release completed", transactions=released, amount_inr=amount)
            return {"status": "completed", "released": released, "amount_inr": amount}

    return asyncio.run(_release())
