"""
Pydantic Schemas for the Kitchen Queue

Covers:
- Bills and their line items (owned by billing, read by the kitchen)
- Order-item masters and fallback timing records (kitchen metadata)
- Queue units and statistics (derived on every recomputation)
- Request/response bodies of the HTTP API

Author: Khalil Bannouri
Version: 1.0.0
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# ENUMS
# =============================================================================

class KitchenStatus(str, Enum):
    PENDING = "pending"
    COOKING = "cooking"
    READY = "ready"


class BillStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    PAID = "paid"


class Speed(str, Enum):
    FAST = "fast"
    MEDIUM = "medium"
    SLOW = "slow"


class StationType(str, Enum):
    COOK = "cook"
    GRILL = "grill"


# =============================================================================
# STORE RECORDS
# =============================================================================

def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Read a timestamp without offset as UTC; convert the others to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class LineItem(BaseModel):
    """
    One ordered dish inside a bill.

    Unknown keys written by the billing subsystem (price, notes, ...) are
    kept so a whole-list write back does not drop them.
    """
    model_config = ConfigDict(extra="allow")

    order_item_id: Optional[str] = None
    menu_item_id: Optional[str] = None
    name: Optional[str] = None
    quantity: int = Field(default=1, ge=1, examples=[2])
    kitchen_status: Optional[KitchenStatus] = None
    completed_count: int = Field(default=0, ge=0)
    start_time: Optional[datetime] = None
    completed_time: Optional[datetime] = None

    @field_validator("start_time", "completed_time")
    @classmethod
    def normalize_times(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @model_validator(mode="after")
    def normalize_completion(self) -> "LineItem":
        # completed_count never exceeds quantity and a finished batch is ready
        if self.completed_count > self.quantity:
            self.completed_count = self.quantity
        if self.completed_count == self.quantity:
            self.kitchen_status = KitchenStatus.READY
        return self

    @property
    def reference(self) -> Optional[str]:
        return self.order_item_id or self.menu_item_id

    def matches(self, reference: str) -> bool:
        """True when either linked id equals the reference."""
        return self.order_item_id == reference or self.menu_item_id == reference


class Bill(BaseModel):
    """A table's open tab for the current visit."""
    model_config = ConfigDict(extra="allow")

    id: str
    date: str = Field(..., examples=["2026-10-18"])
    table_number: int = Field(..., ge=0, examples=[5])
    status: BillStatus = BillStatus.PENDING
    bill_order: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    items: List[LineItem] = Field(default_factory=list)

    @field_validator("created_at", "updated_at")
    @classmethod
    def normalize_times(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


class OrderItemMaster(BaseModel):
    """A named dish variant carrying kitchen metadata."""
    id: str
    name: str = Field(..., min_length=1)
    speed: Optional[Speed] = None
    station_type: Optional[StationType] = None
    priority: Optional[int] = Field(default=None, ge=1, le=4)
    estimated_minutes: Optional[int] = Field(default=None, ge=0)
    parent_menu_item_id: Optional[str] = None
    category: Optional[str] = None

    @property
    def has_timing(self) -> bool:
        return all(
            value is not None
            for value in (self.speed, self.station_type, self.priority, self.estimated_minutes)
        )


class TimingRecord(BaseModel):
    """Legacy kitchen metadata keyed by order-item id or menu-item id."""
    id: str
    order_item_id: Optional[str] = None
    menu_item_id: Optional[str] = None
    name: Optional[str] = None
    speed: Optional[Speed] = None
    station_type: Optional[StationType] = None
    priority: Optional[int] = Field(default=None, ge=1, le=4)
    estimated_minutes: Optional[int] = Field(default=None, ge=0)
    created_at: Optional[datetime] = None


# =============================================================================
# DERIVED QUEUE
# =============================================================================

class KitchenTiming(BaseModel):
    """Normalized timing attributes resolved for one line item."""
    model_config = ConfigDict(frozen=True)

    speed: Speed = Speed.MEDIUM
    station_type: StationType = StationType.COOK
    priority: int = 1
    base_minutes: int = 2
    name: Optional[str] = None
    source: str = "default"


class QueueUnit(BaseModel):
    """One physical unit of a line item as the kitchen sees it."""
    bill_id: str
    table_number: int
    created_at: datetime
    bill_order: int
    order_item_id: Optional[str] = None
    menu_item_id: Optional[str] = None
    name: str
    timing: KitchenTiming
    kitchen_status: KitchenStatus
    quantity: int = 1
    batch_order: int
    batch_total: int
    score: float
    estimated_minutes: int
    is_completed: bool = False
    start_time: Optional[datetime] = None
    completed_time: Optional[datetime] = None

    @property
    def reference(self) -> Optional[str]:
        return self.order_item_id or self.menu_item_id

    @property
    def unit_key(self) -> tuple:
        return (self.bill_id, self.reference, self.batch_order)

    @property
    def station_type(self) -> StationType:
        return self.timing.station_type


class KitchenStats(BaseModel):
    total: int = 0
    pending: int = 0
    cooking: int = 0
    ready: int = 0
    average_wait_minutes: int = 0


# =============================================================================
# API SCHEMAS
# =============================================================================

class CompleteCookingRequest(BaseModel):
    batch_order: int = Field(default=1, ge=1, examples=[1])


class TransitionResponse(BaseModel):
    success: bool
    bill_id: str
    reference: str
    message: str
    bill_status: Optional[BillStatus] = None


class KitchenQueueResponse(BaseModel):
    """Station view of the queue."""
    queue: List[QueueUnit]
    stats: KitchenStats
    available_tables: List[int]
    next_item: Optional[QueueUnit] = None
    cooking_items: List[QueueUnit]
    computed_at: Optional[datetime] = None
    error: Optional[str] = None


class ErrorStateResponse(BaseModel):
    error: Optional[str] = None


class DeleteTimingsResponse(BaseModel):
    success: bool
    count: int


class HealthResponse(BaseModel):
    status: str
    store: str
    redis: str
    timestamp: datetime
