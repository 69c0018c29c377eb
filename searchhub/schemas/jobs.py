"""Job payloads accepted by the queue, validated before dispatch."""

import uuid
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from searchhub.errors import InvalidJobPayloadError

INDEX_DOCUMENT = "index-document"
SEND_REMINDER = "send-reminder"
SYNC_STALE_DOCUMENTS = "sync-stale-documents"
CLEANUP_OLD_JOBS = "cleanup-old-jobs"


class _JobPayload(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class IndexDocumentJob(_JobPayload):
    kind: Literal["index-document"] = INDEX_DOCUMENT
    tenant_id: uuid.UUID = Field(..., description="The tenant that owns the document.")
    document_id: uuid.UUID = Field(..., description="The document to be indexed.")
    reindex: bool = Field(
        default=False, description="Skip the unchanged-checksum short-circuit."
    )


class SendReminderJob(_JobPayload):
    kind: Literal["send-reminder"] = SEND_REMINDER
    tenant_id: uuid.UUID
    document_command_id: uuid.UUID


class SyncStaleDocumentsJob(_JobPayload):
    kind: Literal["sync-stale-documents"] = SYNC_STALE_DOCUMENTS


class CleanupOldJobsJob(_JobPayload):
    kind: Literal["cleanup-old-jobs"] = CLEANUP_OLD_JOBS


JobPayload = Annotated[
    Union[IndexDocumentJob, SendReminderJob, SyncStaleDocumentsJob, CleanupOldJobsJob],
    Field(discriminator="kind"),
]

_payload_adapter: TypeAdapter[JobPayload] = TypeAdapter(JobPayload)


def parse_job_payload(data: Any) -> JobPayload:
    """
    Validate raw queue data into one of the known payload variants.

    Raises:
        InvalidJobPayloadError: If the data matches no variant.
    """
    if isinstance(data, _JobPayload):
        return data
    try:
        return _payload_adapter.validate_python(data)
    except ValidationError as e:
        raise InvalidJobPayloadError(f"Invalid job payload: {e}") from e
