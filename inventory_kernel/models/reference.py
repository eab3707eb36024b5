"""
Module: inventory_kernel.models.reference
Responsibility: ORM persistence for the reference rows the ledger reads but
    does not own: warehouse locations, sites, projects, purchase orders and
    system parameters.
Architecture position: Kernel > Models.  May import from db/ only.

Audit relevance:
    Reversal of receipts and issues resolves destination sites through
    PurchaseOrder.site_id and Project.site_id, and decides whether a receipt
    landed in on-hand stock by comparing against the central-warehouse site
    stored in SystemParameter.
"""

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, IdentityKey


class Location(Base):
    """A physical storage bin or warehouse area."""

    __tablename__ = "warehouse_locations"

    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)


class Site(Base):
    """A customer / operating site that projects belong to."""

    __tablename__ = "sites"

    name: Mapped[str] = mapped_column(String(200), nullable=False)


class Project(Base):
    """A project; every project belongs to at most one site."""

    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    site_id: Mapped[int | None] = mapped_column(
        IdentityKey,
        ForeignKey("sites.id"),
        nullable=True,
    )


class PurchaseOrder(Base):
    """
    Purchase order header as seen by the ledger.

    The approval workflow that owns purchase orders is outside the kernel;
    the ledger only needs the delivery site and project.
    """

    __tablename__ = "purchase_orders"

    number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    site_id: Mapped[int | None] = mapped_column(
        IdentityKey,
        ForeignKey("sites.id"),
        nullable=True,
    )
    project_id: Mapped[int | None] = mapped_column(
        IdentityKey,
        ForeignKey("projects.id"),
        nullable=True,
    )


class SystemParameter(Base):
    """Key/value system parameter (e.g. the central-warehouse site id)."""

    __tablename__ = "system_parameters"

    key: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)
