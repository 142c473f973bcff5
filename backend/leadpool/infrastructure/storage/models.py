"""
SQLAlchemy Database Models
Maps to the CRM PostgreSQL tables (leads, activity_logs, inventory, collection_notes)
"""
from sqlalchemy import Column, String, Boolean, Date, DateTime, Text, Float, JSON, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class LeadRecord(Base):
    """Lead model - maps to leads table"""
    __tablename__ = "leads"

    id = Column(String(36), primary_key=True)
    created_at = Column(DateTime(timezone=True), index=True)
    created_by = Column(String(255))
    updated_at = Column(DateTime(timezone=True))
    updated_by = Column(String(255))

    # Contact
    full_name = Column(String(255))
    phone = Column(String(20), index=True)
    national_id = Column(String(11))
    email = Column(String(255))
    birth_date = Column(String(20))
    city = Column(String(100))
    district = Column(String(100))

    # Employment / assets
    occupation = Column(String(255))
    salary = Column(String(50))
    months_at_employer = Column(String(50))
    property_status = Column(String(100))
    has_vehicle = Column(Boolean)
    has_deed = Column(Boolean)

    # Legal
    has_open_enforcement = Column(Boolean)
    has_closed_enforcement = Column(Boolean)
    enforcement_detail = Column(Text)
    has_lawsuit = Column(Boolean)
    lawsuit_detail = Column(Text)

    # Pipeline
    status = Column(String(50), index=True)
    owner_email = Column(String(255), index=True)
    claimed_at = Column(DateTime(timezone=True))
    last_call_at = Column(DateTime(timezone=True))
    next_call_at = Column(DateTime(timezone=True))
    call_note = Column(Text)
    description = Column(Text)
    application_channel = Column(String(50))
    requested_product = Column(String(255))
    requested_amount = Column(Float)
    cancellation_reason = Column(Text)

    # Guarantor
    guarantor_full_name = Column(String(255))
    guarantor_phone = Column(String(20))
    guarantor_national_id = Column(String(11))
    guarantor_occupation = Column(String(255))
    guarantor_salary = Column(String(50))
    guarantor_notes = Column(Text)

    # Approval
    approval_status = Column(String(50))
    credit_limit = Column(String(50))
    admin_note = Column(Text)
    approved_at = Column(DateTime(timezone=True))
    approved_by = Column(String(255))

    # Delivery
    product_serial_no = Column(String(100))
    product_imei = Column(String(20))
    delivered_at = Column(DateTime(timezone=True))
    delivered_by = Column(String(255))
    sold_items = Column(JSON, default=list)

    collection_class = Column(String(50), index=True)
    collection_status = Column(String(100))
    payment_promise_date = Column(Date)

    __table_args__ = (
        Index("ix_leads_owner_status", "owner_email", "status"),
    )


class AuditLogRecord(Base):
    """Audit entry - maps to activity_logs table (insert only)"""
    __tablename__ = "activity_logs"

    id = Column(String(36), primary_key=True)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    actor_email = Column(String(255), nullable=False)
    lead_id = Column(String(36), index=True)
    action = Column(String(50), nullable=False)
    old_value = Column(Text)
    new_value = Column(Text)
    note = Column(Text)


class InventoryRecord(Base):
    """Inventory item - maps to inventory table"""
    __tablename__ = "inventory"

    id = Column(String(36), primary_key=True)
    brand = Column(String(100), nullable=False)
    model = Column(String(100), nullable=False)
    serial_no = Column(String(100))
    imei = Column(String(20))
    status = Column(String(20), nullable=False, default="in_stock", index=True)
    entered_at = Column(DateTime(timezone=True))
    exited_at = Column(DateTime(timezone=True))
    customer_id = Column(String(36))
    added_by = Column(String(255))
    installment_prices = Column(JSON, default=dict)


class CollectionNoteRecord(Base):
    """Collection note - maps to collection_notes table"""
    __tablename__ = "collection_notes"

    id = Column(String(36), primary_key=True)
    lead_id = Column(String(36), nullable=False, index=True)
    author_email = Column(String(255), nullable=False)
    note = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
