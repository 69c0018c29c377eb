"""Fires inline reminder commands: scheduled -> notified, at most once."""

import enum
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from searchhub.repositories import DocumentStore
from searchhub.repositories.commands import SCHEDULED
from searchhub.utils.logging_config import logger


class ReminderReason(str, enum.Enum):
    NOT_FOUND = "not-found"
    ALREADY_PROCESSED = "already-processed"


@dataclass(frozen=True)
class ReminderResult:
    command_id: uuid.UUID
    ok: bool = True
    reason: Optional[ReminderReason] = None
    notified_at: Optional[datetime] = None


class ReminderService:
    def __init__(self, store: DocumentStore):
        self.store = store

    async def process(self, tenant_id: uuid.UUID, command_id: uuid.UUID) -> ReminderResult:
        command = await self.store.commands.get(tenant_id, command_id)
        if command is None:
            logger.info(f"reminder.not_found command_id={command_id}")
            return ReminderResult(command_id=command_id, reason=ReminderReason.NOT_FOUND)

        status = (command.body or {}).get("status")
        if status != SCHEDULED:
            logger.info(f"reminder.already_processed command_id={command_id} status={status}")
            return ReminderResult(
                command_id=command_id, reason=ReminderReason.ALREADY_PROCESSED
            )

        notified_at = datetime.now(timezone.utc)
        updated = await self.store.commands.mark_notified(tenant_id, command_id, notified_at)
        if not updated:
            # Another delivery, or the user, changed the status since the read.
            return ReminderResult(
                command_id=command_id, reason=ReminderReason.ALREADY_PROCESSED
            )

        logger.info(f"reminder.notified command_id={command_id}")
        return ReminderResult(command_id=command_id, notified_at=notified_at)
