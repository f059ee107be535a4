"""
Demo item API endpoints.

In-memory storage only; exists so the logging pipeline has real traffic
with sensitive fields to capture.
"""

import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Request

from ..core.exceptions import ItemNotFoundError
from ..models.items import CreateItemRequest, Item

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/v1")


class ItemStore:
    """Thread-safe in-memory item list."""

    def __init__(self, items: Optional[List[Item]] = None) -> None:
        self._items: List[Item] = list(items or [])
        self._lock = threading.Lock()

    @classmethod
    def with_samples(cls) -> "ItemStore":
        now = datetime.now(timezone.utc)
        return cls([
            Item(
                id="1",
                name="Sample Item 1",
                description="This is a sample item for demonstration",
                email="user1@example.com",
                phone_number="+1-555-0101",
                created_at=now - timedelta(hours=24),
            ),
            Item(
                id="2",
                name="Sample Item 2",
                description="Another sample item",
                email="user2@example.com",
                phone_number="+1-555-0102",
                created_at=now - timedelta(hours=12),
            ),
        ])

    def list_items(self) -> List[Item]:
        with self._lock:
            return list(self._items)

    def get(self, item_id: str) -> Optional[Item]:
        with self._lock:
            for item in self._items:
                if item.id == item_id:
                    return item
        return None

    def add(self, request: CreateItemRequest) -> Item:
        item = Item(
            id=str(uuid.uuid4()),
            created_at=datetime.now(timezone.utc),
            **request.model_dump(),
        )
        with self._lock:
            self._items.append(item)
        return item


def get_item_store(request: Request) -> ItemStore:
    """Dependency to get the item store from app state."""
    return request.app.state.item_store


@router.get(
    "/items",
    response_model=List[Item],
    response_model_exclude_none=True,
    summary="List items",
)
async def list_items(store: ItemStore = Depends(get_item_store)) -> List[Item]:
    return store.list_items()


@router.get(
    "/items/{item_id}",
    response_model=Item,
    response_model_exclude_none=True,
    summary="Get an item",
)
async def get_item(item_id: str, store: ItemStore = Depends(get_item_store)) -> Item:
    item = store.get(item_id)
    if item is None:
        raise ItemNotFoundError(item_id)
    return item


@router.post(
    "/items",
    response_model=Item,
    response_model_exclude_none=True,
    status_code=201,
    summary="Create an item",
)
async def create_item(
    body: CreateItemRequest,
    store: ItemStore = Depends(get_item_store),
) -> Item:
    item = store.add(body)
    logger.info("Item created", item_id=item.id)
    return item
