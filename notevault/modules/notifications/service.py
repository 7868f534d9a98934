"""
Notification Service - In-App Notifications

Other services create notifications inside their own database transaction:

    await NotificationService(db).notify(
        user_id=seller_id,
        type=NotificationType.SALE,
        title="New sale",
        message="Your note 'Thermodynamics' was purchased",
    )
"""
import uuid

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.core.exceptions import NotFoundError
from notevault.core.logging import get_logger
from notevault.core.models import utc_now
from notevault.modules.notifications.models import Notification, NotificationType

logger = get_logger(__name__)


class NotificationService:
    """In-app notification inbox."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def notify(
        self,
        user_id: uuid.UUID,
        type: NotificationType,
        title: str,
        message: str,
    ) -> Notification:
        """Queue a notification in the caller's transaction (flush only)."""
        notification = Notification(
            user_id=user_id,
            type=type.value,
            title=title,
            message=message,
            is_read=False,
        )
        self.db.add(notification)
        await self.db.flush()

        logger.debug("Notification created", user_id=str(user_id), type=type.value)
        return notification

    async def list_for_user(
        self,
        user_id: uuid.UUID,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[Notification], int, int]:
        """Return (items, total, unread_count), newest first."""
        total = await self.db.scalar(
            select(func.count()).select_from(Notification).where(Notification.user_id == user_id)
        )
        result = await self.db.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        unread = await self.unread_count(user_id)
        return list(result.scalars().all()), total or 0, unread

    async def _get_owned(self, user_id: uuid.UUID, notification_id: uuid.UUID) -> Notification:
        result = await self.db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        notification = result.scalar_one_or_none()
        if not notification:
            raise NotFoundError("Notification", notification_id)
        return notification

    async def get(self, user_id: uuid.UUID, notification_id: uuid.UUID) -> Notification:
        """Open a notification; opening marks it read."""
        return await self.mark_read(user_id, notification_id)

    async def mark_read(self, user_id: uuid.UUID, notification_id: uuid.UUID) -> Notification:
        notification = await self._get_owned(user_id, notification_id)
        if not notification.is_read:
            notification.is_read = True
            notification.read_at = utc_now()
            await self.db.commit()
            await self.db.refresh(notification)
        return notification

    async def mark_all_read(self, user_id: uuid.UUID) -> int:
        result = await self.db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
            .values(is_read=True, read_at=utc_now())
        )
        await self.db.commit()
        return result.rowcount or 0

    async def clear_all(self, user_id: uuid.UUID) -> int:
        result = await self.db.execute(
            delete(Notification).where(Notification.user_id == user_id)
        )
        await self.db.commit()
        logger.info("Notifications cleared", user_id=str(user_id), count=result.rowcount)
        return result.rowcount or 0

    async def unread_count(self, user_id: uuid.UUID) -> int:
        count = await self.db.scalar(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        )
        return count or 0
