"""Studio records.

Every record is frozen. State changes build a new record with
``dataclasses.replace`` and swap it into the store as a whole, so a reader
never sees a concept halfway through an update.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING

from ..media import MediaBlob
from ..utils import new_id, now_ms

if TYPE_CHECKING:
    from .registry import AssetRegistry
    from .status import AgentStatus


class AssetKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    TEXT = "text"


class MessageRole(str, Enum):
    USER = "user"
    AGENT = "agent"
    SYSTEM = "system"


class ImageRole(str, Enum):
    PRIMARY = "primary"
    ARTISTIC = "artistic"
    TECHNICAL = "technical"


DERIVATIVE_ROLES = (ImageRole.ARTISTIC, ImageRole.TECHNICAL)


class RunwayKind(str, Enum):
    PHOTO = "photo"
    VIDEO = "video"


@dataclass(frozen=True)
class InspirationAsset:
    id: str
    kind: AssetKind
    mime_type: str
    payload: bytes = field(repr=False)
    display_name: str

    @property
    def text(self) -> str:
        return self.payload.decode("utf-8", errors="replace")

    def as_blob(self) -> MediaBlob:
        return MediaBlob(data=self.payload, mime_type=self.mime_type)


@dataclass(frozen=True)
class ChatMessage:
    id: str
    role: MessageRole
    text: str
    timestamp: int
    reasoning_note: str | None = None

    @classmethod
    def create(cls, role: MessageRole, text: str, reasoning_note: str | None = None) -> "ChatMessage":
        return cls(id=new_id("msg"), role=role, text=text, timestamp=now_ms(), reasoning_note=reasoning_note)


WELCOME_MESSAGE = ChatMessage(
    id="init",
    role=MessageRole.SYSTEM,
    text=(
        "Welcome to the studio. Upload inspiration or describe your vision to begin; "
        "share an asset to let the design agent see it."
    ),
    timestamp=0,
)


@dataclass(frozen=True)
class DesignImage:
    id: str
    role: ImageRole
    concept_id: str
    media: MediaBlob = field(repr=False)
    revision: int = 1
    source_revision: int | None = None
    stale: bool = False

    @property
    def url(self) -> str:
        return self.media.to_data_url()


@dataclass(frozen=True)
class ConceptImages:
    primary: DesignImage | None = None
    artistic: DesignImage | None = None
    technical: DesignImage | None = None

    def get(self, role: ImageRole) -> DesignImage | None:
        return getattr(self, role.value)

    def with_image(self, role: ImageRole, image: DesignImage | None) -> "ConceptImages":
        return replace(self, **{role.value: image})

    def all(self) -> list[DesignImage]:
        return [image for image in (self.primary, self.artistic, self.technical) if image is not None]


@dataclass(frozen=True)
class BOMItem:
    location: str
    item: str
    description: str
    quantity: str
    cost_estimate: float


@dataclass(frozen=True)
class Measurement:
    point_of_measure: str
    value: float
    unit: str
    tolerance: str


@dataclass(frozen=True)
class SourcingResult:
    title: str
    url: str


@dataclass(frozen=True)
class TechPack:
    style_number: str
    season: str
    bom: tuple[BOMItem, ...] = ()
    measurements: tuple[Measurement, ...] = ()
    construction_notes: tuple[str, ...] = ()
    sourcing_results: tuple[SourcingResult, ...] = ()
    total_cost_estimate: float = 0.0
    currency: str = "USD"
    source_revision: int | None = None
    sourcing_query: str | None = None


@dataclass(frozen=True)
class DesignConcept:
    id: str
    name: str
    description: str
    images: ConceptImages = field(default_factory=ConceptImages)
    tech_pack: TechPack | None = None
    finalized: bool = False
    pending: frozenset[ImageRole] = frozenset()

    @property
    def primary(self) -> DesignImage | None:
        return self.images.primary

    @property
    def primary_revision(self) -> int:
        return self.images.primary.revision if self.images.primary else 0

    def find_image(self, image_id: str) -> DesignImage | None:
        for image in self.images.all():
            if image.id == image_id:
                return image
        return None

    def is_pending(self, role: ImageRole) -> bool:
        return role in self.pending

    @property
    def tech_pack_stale(self) -> bool:
        if self.tech_pack is None or self.tech_pack.source_revision is None:
            return False
        return self.tech_pack.source_revision != self.primary_revision


@dataclass(frozen=True)
class RunwayAsset:
    id: str
    kind: RunwayKind
    media: MediaBlob = field(repr=False)
    source_concept_id: str
    scenario_label: str
    created_at: int

    @property
    def url(self) -> str:
        return self.media.to_data_url()


@dataclass(frozen=True)
class StudioState:
    registry: "AssetRegistry"
    status: "AgentStatus"
    chat_history: tuple[ChatMessage, ...] = (WELCOME_MESSAGE,)
    selected_asset_ids: frozenset[str] = frozenset()
    concepts: tuple[DesignConcept, ...] = ()
    active_concept_id: str | None = None
    gallery: tuple[RunwayAsset, ...] = ()

    def concept(self, concept_id: str) -> DesignConcept | None:
        for concept in self.concepts:
            if concept.id == concept_id:
                return concept
        return None

    def with_concept(self, concept: DesignConcept) -> "StudioState":
        concepts = tuple(concept if existing.id == concept.id else existing for existing in self.concepts)
        return replace(self, concepts=concepts)

    def with_message(self, message: ChatMessage) -> "StudioState":
        return replace(self, chat_history=self.chat_history + (message,))
