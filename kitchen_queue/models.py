"""
SQLAlchemy Database Models

Tables backing the SQL kitchen store:
- bills: one row per table tab, line items kept as a JSON document
- order_items: dish variants with kitchen metadata
- kitchen_timings: legacy fallback timing records

Author: Khalil Bannouri
Version: 1.0.0
"""

from sqlalchemy import Column, Integer, String, DateTime, Enum, JSON
from sqlalchemy.sql import func

from kitchen_queue.database import Base
from kitchen_queue.schemas import BillStatus, Speed, StationType


class BillRecord(Base):
    """
    Bill table.
    
    Line items are stored as a single JSON array and always written back
    as a whole, the same way the document store did it.
    """
    __tablename__ = "bills"

    id = Column(String(64), primary_key=True)
    business_date = Column(String(10), nullable=False, index=True)
    table_number = Column(Integer, nullable=False, index=True)
    status = Column(
        Enum(BillStatus),
        default=BillStatus.PENDING,
        nullable=False,
        index=True
    )
    bill_order = Column(Integer, nullable=True)
    items = Column(JSON, nullable=False, default=list)

    # =========================================================================
    # TIMESTAMPS
    # =========================================================================
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<Bill {self.id} - table {self.table_number} - {self.status.value}>"


class OrderItemRecord(Base):
    """Order-item master table (dish variants)."""
    __tablename__ = "order_items"

    id = Column(String(64), primary_key=True)
    name = Column(String(100), nullable=False)
    speed = Column(Enum(Speed), nullable=True)
    station_type = Column(Enum(StationType), nullable=True)
    priority = Column(Integer, nullable=True)
    estimated_minutes = Column(Integer, nullable=True)
    parent_menu_item_id = Column(String(64), nullable=True, index=True)
    category = Column(String(50), nullable=True)

    def __repr__(self):
        return f"<OrderItem {self.id} - {self.name}>"


class KitchenTimingRecord(Base):
    """Fallback timing table, keyed by order-item id or menu-item id."""
    __tablename__ = "kitchen_timings"

    id = Column(String(64), primary_key=True)
    order_item_id = Column(String(64), nullable=True, index=True)
    menu_item_id = Column(String(64), nullable=True, index=True)
    name = Column(String(100), nullable=True)
    speed = Column(Enum(Speed), nullable=True)
    station_type = Column(Enum(StationType), nullable=True)
    priority = Column(Integer, nullable=True)
    estimated_minutes = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self):
        return f"<KitchenTiming {self.id} - {self.order_item_id or self.menu_item_id}>"
