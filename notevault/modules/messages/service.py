"""
Messages Module - Business Logic Service
Direct messages between buyers and sellers.
"""
import uuid

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from notevault.core.exceptions import BadRequestError, NotFoundError
from notevault.core.logging import get_logger
from notevault.core.security import sanitize_text
from notevault.modules.auth.models import User
from notevault.modules.messages.models import Message
from notevault.modules.messages.schemas import ConversationResponse
from notevault.modules.notifications.models import NotificationType
from notevault.modules.notifications.service import NotificationService

logger = get_logger(__name__)

PREVIEW_LENGTH = 30


def message_preview(content: str) -> str:
    if len(content) <= PREVIEW_LENGTH:
        return content
    return content[:PREVIEW_LENGTH] + "..."


class MessageService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def conversations(self, user: User) -> list[ConversationResponse]:
        """One entry per counterpart, most recent conversation first."""
        result = await self.db.execute(
            select(Message)
            .where(or_(Message.sender_id == user.id, Message.receiver_id == user.id))
            .order_by(Message.created_at.desc())
        )

        latest: dict[uuid.UUID, Message] = {}
        unread: dict[uuid.UUID, int] = {}
        for message in result.scalars().all():
            other_id = message.receiver_id if message.sender_id == user.id else message.sender_id
            latest.setdefault(other_id, message)
            if message.receiver_id == user.id and not message.is_read:
                unread[other_id] = unread.get(other_id, 0) + 1

        if not latest:
            return []

        users = await self.db.execute(select(User).where(User.id.in_(latest.keys())))
        counterparts = {u.id: u for u in users.scalars().all()}

        conversations = []
        for other_id, message in latest.items():
            other = counterparts.get(other_id)
            if other is None:
                continue
            conversations.append(
                ConversationResponse(
                    id=f"conv_{other_id}",
                    user_id=other_id,
                    user_name=other.full_name,
                    profile_picture_url=other.profile_picture_url,
                    last_message=message.content,
                    last_message_at=message.created_at,
                    unread_count=unread.get(other_id, 0),
                )
            )
        return conversations

    async def thread(self, user: User, other_user_id: uuid.UUID) -> list[Message]:
        """All messages with one counterpart, oldest first. Marks received ones read."""
        result = await self.db.execute(
            select(Message)
            .where(
                or_(
                    and_(Message.sender_id == user.id, Message.receiver_id == other_user_id),
                    and_(Message.sender_id == other_user_id, Message.receiver_id == user.id),
                )
            )
            .order_by(Message.created_at.asc())
        )
        messages = list(result.scalars().all())

        if any(m.receiver_id == user.id and not m.is_read for m in messages):
            await self.db.execute(
                update(Message)
                .where(
                    Message.sender_id == other_user_id,
                    Message.receiver_id == user.id,
                    Message.is_read.is_(False),
                )
                .values(is_read=True)
            )
            await self.db.commit()
            for m in messages:
                if m.receiver_id == user.id:
                    m.is_read = True

        return messages

    async def send(self, sender: User, receiver_id: uuid.UUID, content: str) -> Message:
        content = sanitize_text(content or "")
        if not content:
            raise BadRequestError("Message content is required", code="EMPTY_MESSAGE")
        if receiver_id == sender.id:
            raise BadRequestError("You cannot message yourself", code="SELF_MESSAGE")

        receiver = await self.db.get(User, receiver_id)
        if not receiver or not receiver.is_active:
            raise NotFoundError("User", receiver_id)

        message = Message(
            sender_id=sender.id,
            receiver_id=receiver_id,
            content=content,
            is_read=False,
        )
        self.db.add(message)

        await NotificationService(self.db).notify(
            user_id=receiver_id,
            type=NotificationType.MESSAGE,
            title=f"New message from {sender.full_name}",
            message=message_preview(content),
        )
        await self.db.commit()
        await self.db.refresh(message)

        logger.info("Message sent", sender_id=str(sender.id), receiver_id=str(receiver_id))
        return message
