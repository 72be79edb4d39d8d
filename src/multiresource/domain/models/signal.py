from __future__ import annotations

from dataclasses import dataclass

RESOURCE_SET = "ResourceSet"
RESOURCE_ADDED_TO_TOKEN = "ResourceAddedToToken"
RESOURCE_OVERWRITE_PROPOSED = "ResourceOverwriteProposed"
RESOURCE_ACCEPTED = "ResourceAccepted"
RESOURCE_REJECTED = "ResourceRejected"
RESOURCE_OVERWRITTEN = "ResourceOverwritten"
RESOURCE_PRIORITY_SET = "ResourcePrioritySet"
CUSTOM_DATA_SET = "ResourceCustomDataSet"
CUSTOM_DATA_ADDED = "ResourceCustomDataAdded"
CUSTOM_DATA_REMOVED = "ResourceCustomDataRemoved"
APPROVAL_FOR_RESOURCES = "ApprovalForResources"
APPROVAL_FOR_ALL_FOR_RESOURCES = "ApprovalForAllForResources"
TRANSFER = "Transfer"
APPROVAL = "Approval"

# resource_id carried by a ResourceRejected signal for a batch rejection.
BATCH_SENTINEL = 0


@dataclass(slots=True)
class Signal:
    id: str
    name: str
    token_id: int | None
    resource_id: int | None
    tag_id: int | None
    emitted_at: str
    detail: str | None = None
