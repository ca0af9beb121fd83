"""Messages API endpoints.

Messages are append-only. Posting fills in any field the client left out
(id, timestamp, display time, window id) and echoes the stored message.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from pairchat.api.deps import get_store
from pairchat.models import Message, MessageCreate
from pairchat.store import JsonStore

log = structlog.get_logger()

router = APIRouter(prefix="/api/messages", tags=["messages"])


@router.get("", response_model=list[Message])
def list_messages(
    user: Optional[str] = Query(None, description="Only messages this user sent or received"),
    store: JsonStore = Depends(get_store),
) -> list[Message]:
    """List stored messages in append order."""
    return store.list_messages(user)


@router.post("", response_model=Message, status_code=status.HTTP_201_CREATED)
def create_message(
    body: MessageCreate,
    store: JsonStore = Depends(get_store),
) -> Message:
    """Append a message and return the stored copy."""
    for name in (body.sender, body.receiver):
        if store.get_user(name) is None:
            raise HTTPException(status_code=400, detail=f"Unknown user: {name}")

    message = body.enrich()
    log.debug("message_received", message_id=message.id, window_id=message.window_id)
    return store.append_message(message)
