"""Initial schema: users, categories, items, media, bookings.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

DEFAULT_CATEGORIES = (
    "Electronics",
    "Furniture",
    "Books",
    "Clothing",
    "Sports & Outdoors",
    "Toys & Games",
    "Home & Garden",
    "Other",
)


def upgrade() -> None:
    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.String(20), nullable=False),
        sa.Column("email", sa.String(50), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("address", sa.String(50), nullable=False),
        sa.Column("phone_number", sa.String(20), nullable=False),
        sa.Column("role", sa.Enum("Admin", "User", name="user_role"), nullable=False, server_default="User"),
        sa.Column("points", sa.Integer(), nullable=False, server_default=sa.text("2")),
        sa.Column("registered_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("phone_number", name="uq_users_phone_number"),
        sa.CheckConstraint("points >= 0", name="check_user_points_non_negative"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # Categories table
    categories = op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
    )
    op.create_index("ix_categories_id", "categories", ["id"])
    op.bulk_insert(categories, [{"name": name} for name in DEFAULT_CATEGORIES])

    # Items table
    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id"), nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("request", sa.String(500), nullable=False),
        sa.Column("is_approved", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_items_id", "items", ["id"])
    op.create_index("ix_items_owner_id", "items", ["owner_id"])
    op.create_index("ix_items_category_id", "items", ["category_id"])
    # Public listing: WHERE is_approved ORDER BY created_at DESC
    op.create_index("ix_items_approved_created", "items", ["is_approved", "created_at"])

    # Media table
    op.create_table(
        "media",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id"), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("file_path", sa.String(500), nullable=False),
        sa.Column("content_type", sa.String(100), nullable=False),
        sa.Column("file_size", sa.BigInteger(), nullable=False),
        sa.Column("media_type", sa.String(20), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_media_id", "media", ["id"])
    op.create_index("ix_media_item_id", "media", ["item_id"])
    # At most one primary attachment per item
    op.create_index(
        "uq_media_item_primary", "media", ["item_id"],
        unique=True, postgresql_where=sa.text("is_primary"),
    )

    # Bookings table
    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id"), nullable=False),
        sa.Column("booker_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("booked_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_item_id", "bookings", ["item_id"])
    op.create_index("ix_bookings_booker_id", "bookings", ["booker_id"])
    # THE exclusivity guarantee: one active booking per item.
    # Concurrent inserts for the same item serialize on this index and all
    # but the first fail with a unique violation, which the API maps to 409.
    op.create_index(
        "uq_bookings_item_active", "bookings", ["item_id"],
        unique=True, postgresql_where=sa.text("is_active"),
    )


def downgrade() -> None:
    op.drop_table("bookings")
    op.drop_table("media")
    op.drop_table("items")
    op.drop_table("categories")
    op.drop_table("users")
    sa.Enum(name="user_role").drop(op.get_bind(), checkfirst=True)
