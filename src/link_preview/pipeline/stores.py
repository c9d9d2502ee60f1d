"""Storage and notification collaborators with in-memory implementations."""

import uuid
from abc import abstractmethod
from datetime import datetime
from typing import Protocol, runtime_checkable

import anyio
import structlog

from link_preview.models.card import Card, MetadataStatus
from link_preview.models.category import LinkCategoryMetadata
from link_preview.models.preview import LinkPreview, merge_link_preview

logger = structlog.get_logger(__name__)


# ─── Protocols ───────────────────────────────────────────────────


@runtime_checkable
class CardStore(Protocol):
    """Reads and patches cards. Every write is last-writer-wins."""

    @abstractmethod
    async def get_card(self, card_id: str) -> Card | None: ...

    @abstractmethod
    async def update_metadata(self, card_id: str, preview: LinkPreview, status: MetadataStatus) -> None:
        """Store a preview, carrying an existing screenshot forward."""
        ...

    @abstractmethod
    async def update_screenshot(self, card_id: str, storage_id: str, updated_at: datetime) -> None: ...

    @abstractmethod
    async def update_category(self, card_id: str, category: LinkCategoryMetadata) -> None: ...


@runtime_checkable
class BlobStore(Protocol):
    """Binary storage for screenshots and preview image copies."""

    @abstractmethod
    async def store(self, data: bytes, content_type: str) -> str: ...

    @abstractmethod
    async def delete(self, storage_id: str) -> None: ...


@runtime_checkable
class DownstreamNotifier(Protocol):
    """Receives a card id after a successful extraction."""

    @abstractmethod
    async def notify(self, card_id: str) -> None: ...


# ─── In-Memory Implementations ───────────────────────────────────


class InMemoryCardStore:
    """Dict-backed card store."""

    def __init__(self, cards: list[Card] | None = None) -> None:
        self._cards: dict[str, Card] = {card.id: card for card in cards or []}
        self._lock = anyio.Lock()

    async def add(self, card: Card) -> Card:
        async with self._lock:
            self._cards[card.id] = card
        return card

    async def get_card(self, card_id: str) -> Card | None:
        async with self._lock:
            card = self._cards.get(card_id)
            return card.model_copy(deep=True) if card else None

    async def update_metadata(self, card_id: str, preview: LinkPreview, status: MetadataStatus) -> None:
        async with self._lock:
            card = self._cards.get(card_id)
            if card is None:
                logger.warning("card_missing_on_update", card_id=card_id)
                return
            merged = merge_link_preview(card.metadata.link_preview, preview)
            metadata = card.metadata.model_copy(update={"link_preview": merged})
            self._cards[card_id] = card.model_copy(update={"metadata": metadata, "metadata_status": status})

    async def update_screenshot(self, card_id: str, storage_id: str, updated_at: datetime) -> None:
        async with self._lock:
            card = self._cards.get(card_id)
            if card is None or card.metadata.link_preview is None:
                logger.warning("card_missing_on_update", card_id=card_id)
                return
            preview = card.metadata.link_preview.model_copy(
                update={"screenshot_storage_id": storage_id, "screenshot_updated_at": updated_at}
            )
            metadata = card.metadata.model_copy(update={"link_preview": preview})
            self._cards[card_id] = card.model_copy(update={"metadata": metadata})

    async def update_category(self, card_id: str, category: LinkCategoryMetadata) -> None:
        async with self._lock:
            card = self._cards.get(card_id)
            if card is None:
                logger.warning("card_missing_on_update", card_id=card_id)
                return
            metadata = card.metadata.model_copy(update={"link_category": category})
            self._cards[card_id] = card.model_copy(update={"metadata": metadata})


class InMemoryBlobStore:
    """Dict-backed blob store keyed by random ids."""

    def __init__(self) -> None:
        self._blobs: dict[str, tuple[bytes, str]] = {}
        self._lock = anyio.Lock()

    def __contains__(self, storage_id: object) -> bool:
        return storage_id in self._blobs

    def __len__(self) -> int:
        return len(self._blobs)

    def get(self, storage_id: str) -> tuple[bytes, str] | None:
        return self._blobs.get(storage_id)

    async def store(self, data: bytes, content_type: str) -> str:
        storage_id = uuid.uuid4().hex
        async with self._lock:
            self._blobs[storage_id] = (data, content_type)
        return storage_id

    async def delete(self, storage_id: str) -> None:
        async with self._lock:
            self._blobs.pop(storage_id, None)


class RecordingNotifier:
    """Notifier that records card ids."""

    def __init__(self) -> None:
        self.notified: list[str] = []

    async def notify(self, card_id: str) -> None:
        self.notified.append(card_id)
