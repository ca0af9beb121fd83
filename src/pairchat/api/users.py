"""Users API endpoint."""

from fastapi import APIRouter, Depends

from pairchat.api.deps import get_store
from pairchat.models import User
from pairchat.store import JsonStore

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("", response_model=list[User])
def list_users(store: JsonStore = Depends(get_store)) -> list[User]:
    """List the seeded users."""
    return store.list_users()
