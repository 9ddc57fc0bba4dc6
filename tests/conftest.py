"""
DB Description Updater - pytest Configuration and Fixtures

Provides shared test fixtures for:
- Sample plain-class model roots (EntitySet declarations + DbColumnMeta markers)
- Sample SQLAlchemy declarative models (comment= descriptions)
- Mock connections and catalog dialects

Note: SQLite-backed catalog fixtures are in tests/integration/conftest.py
"""

import enum
import pytest
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace
from typing import Annotated, ClassVar, List, Optional
from unittest.mock import Mock

from sqlalchemy import Column, ForeignKey, Integer, Numeric, String, Table, Text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from db_description_updater.database.catalog import CatalogDialect
from db_description_updater.models import DbColumnMeta, EntitySet, db_table_meta


# ============================================================================
# Sample Plain Models
# ============================================================================

class OrderStatus(enum.Enum):
    OPEN = "open"
    SHIPPED = "shipped"


@dataclass
class Address:
    street: str
    city: str


@db_table_meta(description="People records")
class Person:
    id: int
    first_name: Annotated[str, DbColumnMeta("Given name")]
    last_name: Optional[str]
    nickname: Annotated[Optional[str], DbColumnMeta("What friends call them")]
    home: Annotated[Address, DbColumnMeta("Home address")]
    tags: Annotated[List[str], DbColumnMeta("Free-form tags")]
    registry_code: ClassVar[str] = "P"
    _cache: dict

    @property
    def full_name(self) -> Annotated[str, DbColumnMeta("First and last name")]:
        return f"{self.first_name} {self.last_name}"


@db_table_meta(description="Customer orders", name="tblOrders")
class Order:
    id: int
    placed_at: Annotated[datetime, DbColumnMeta("When the order was placed")]
    total: Annotated[Decimal, DbColumnMeta("Order total", name="OrderTotal")]
    status: Annotated[OrderStatus, DbColumnMeta("Fulfilment status")]


class Product:
    sku: str
    price: Decimal


class OrderSet(EntitySet[Order]):
    pass


class ShopModel:
    """Model root: two entity sets declared two different ways, plus a non-collection."""
    persons: EntitySet[Person]
    orders: OrderSet
    schema_version: int


class PersonModel:
    """Model root holding only Person."""
    persons: EntitySet[Person]


# ============================================================================
# Sample SQLAlchemy Models
# ============================================================================

class Base(DeclarativeBase):
    pass


class Customer(Base):
    __tablename__ = "Customers"
    __table_args__ = {"comment": "Registered customers"}

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(255), comment="Login e-mail address")
    display_name: Mapped[Optional[str]] = mapped_column("DisplayName", String(100), comment="Shown on invoices")
    notes: Mapped[Optional[str]] = mapped_column(Text)
    invoices: Mapped[List["Invoice"]] = relationship(back_populates="customer")


class Invoice(Base):
    __table__ = Table(
        "Invoices",
        Base.metadata,
        Column("id", Integer, primary_key=True),
        Column("customer_id", Integer, ForeignKey("Customers.id"), comment="Owning customer"),
        Column("total", Numeric(10, 2), comment="Invoice total"),
    )

    customer: Mapped["Customer"] = relationship(back_populates="invoices")


class BillingModel:
    customers: EntitySet[Customer]
    invoices: EntitySet[Invoice]


@pytest.fixture
def sample_models():
    """
    Sample model classes.

    Returns:
        Namespace with plain (Person, Order, Product, ShopModel, PersonModel)
        and SQLAlchemy (Base, Customer, Invoice, BillingModel) models
    """
    return SimpleNamespace(
        Person=Person,
        Order=Order,
        OrderSet=OrderSet,
        Product=Product,
        Address=Address,
        ShopModel=ShopModel,
        PersonModel=PersonModel,
        Base=Base,
        Customer=Customer,
        Invoice=Invoice,
        BillingModel=BillingModel,
    )


# ============================================================================
# Mock Fixtures
# ============================================================================

@pytest.fixture
def mock_db_connection():
    """
    Mock SQLAlchemy connection with an active transaction.

    Returns:
        Mock Connection object; connection.begin() returns connection.transaction
    """
    conn = Mock(spec=Connection)
    transaction = Mock()
    transaction.is_active = True
    conn.begin.return_value = transaction
    conn.transaction = transaction
    return conn


@pytest.fixture
def mock_engine(mock_db_connection):
    """
    Mock SQLAlchemy engine handing out mock_db_connection.

    Returns:
        Mock Engine object
    """
    engine = Mock(spec=Engine)
    engine.connect.return_value = mock_db_connection
    return engine


@pytest.fixture
def mock_dialect():
    """
    Mock catalog dialect where nothing is stored yet.

    Returns:
        Mock CatalogDialect object
    """
    dialect = Mock(spec=CatalogDialect)
    dialect.description_exists.return_value = False
    return dialect
