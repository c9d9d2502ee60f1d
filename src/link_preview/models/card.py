"""Card records as seen by the pipeline."""

from typing import Literal

from pydantic import BaseModel, Field

from link_preview.models.category import LinkCategoryMetadata
from link_preview.models.preview import LinkPreview

MetadataStatus = Literal["pending", "completed", "failed"]


class CardMetadata(BaseModel):
    """The metadata field group owned by the pipeline."""

    link_preview: LinkPreview | None = None
    link_category: LinkCategoryMetadata | None = None

    model_config = {"extra": "ignore"}


class Card(BaseModel):
    """A saved item. Only link cards with a URL are processed."""

    id: str
    type: str = "link"
    url: str | None = None
    metadata: CardMetadata = Field(default_factory=CardMetadata)
    metadata_status: MetadataStatus = "pending"

    model_config = {"extra": "ignore"}

    @property
    def is_processable_link(self) -> bool:
        return self.type == "link" and bool(self.url and self.url.strip())
