"""Create promotions tables

Revision ID: 3b7e1c9a2f40
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3b7e1c9a2f40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


applied_to = sa.Enum("MATCHING_LINE_ITEMS", "ALL_LINE_ITEMS", name="appliedto")
category_relationship_type = sa.Enum("SOURCE", "TARGET", "BOTH", name="categoryrelationshiptype")
base_discount_type = sa.Enum(
    "VALUE",
    "PERCENT_TOTAL",
    "PERCENT_TOTAL_DISCOUNTED",
    "PERCENT_ITEMS",
    "PERCENT_ITEMS_DISCOUNTED",
    name="basediscounttype",
)
percentage_off_subject = sa.Enum("ORIGINAL", "DISCOUNTED", name="percentageoffsubject")


def upgrade() -> None:
    op.create_table(
        "customers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=100), nullable=True),
        sa.Column("customer_group", sa.String(length=50), nullable=True),
        sa.Column("is_credentialed", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_customers_id"), "customers", ["id"], unique=False)
    op.create_index(op.f("ix_customers_email"), "customers", ["email"], unique=True)

    op.create_table(
        "addresses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("full_name", sa.String(length=100), nullable=True),
        sa.Column("organization", sa.String(length=200), nullable=True),
        sa.Column("address_line1", sa.String(length=200), nullable=True),
        sa.Column("address_line2", sa.String(length=200), nullable=True),
        sa.Column("locality", sa.String(length=100), nullable=True),
        sa.Column("administrative_area", sa.String(length=100), nullable=True),
        sa.Column("postal_code", sa.String(length=20), nullable=True),
        sa.Column("country_code", sa.String(length=2), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_addresses_id"), "addresses", ["id"], unique=False)

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("parent_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(length=100), nullable=False),
        sa.Column("slug", sa.String(length=100), nullable=False),
        sa.ForeignKeyConstraint(["parent_id"], ["categories.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_categories_id"), "categories", ["id"], unique=False)
    op.create_index(op.f("ix_categories_slug"), "categories", ["slug"], unique=True)

    op.create_table(
        "category_relations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.Column("element_id", sa.Integer(), nullable=False),
        sa.Column("element_is_source", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_category_relations_id"), "category_relations", ["id"], unique=False)
    op.create_index(
        "ix_category_relations_element",
        "category_relations",
        ["element_id", "element_is_source"],
        unique=False,
    )

    op.create_table(
        "purchasables",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=True),
        sa.Column("sku", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("is_promotable", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_purchasables_id"), "purchasables", ["id"], unique=False)
    op.create_index(op.f("ix_purchasables_product_id"), "purchasables", ["product_id"], unique=False)
    op.create_index(op.f("ix_purchasables_sku"), "purchasables", ["sku"], unique=True)

    op.create_table(
        "payment_currencies",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("iso", sa.String(length=3), nullable=False),
        sa.Column("primary", sa.Boolean(), nullable=False),
        sa.Column("rate", sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("iso"),
    )
    op.create_index(op.f("ix_payment_currencies_id"), "payment_currencies", ["id"], unique=False)

    op.create_table(
        "discounts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("date_from", sa.DateTime(), nullable=True),
        sa.Column("date_to", sa.DateTime(), nullable=True),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("stop_processing", sa.Boolean(), nullable=False),
        sa.Column("ignore_sales", sa.Boolean(), nullable=False),
        sa.Column("applied_to", applied_to, nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("coupon_format", sa.String(length=20), nullable=False),
        sa.Column("all_purchasables", sa.Boolean(), nullable=False),
        sa.Column("all_categories", sa.Boolean(), nullable=False),
        sa.Column("category_relationship_type", category_relationship_type, nullable=False),
        sa.Column("purchase_qty", sa.Integer(), nullable=False),
        sa.Column("max_purchase_qty", sa.Integer(), nullable=False),
        sa.Column("purchase_total", sa.Float(), nullable=False),
        sa.Column("base_discount", sa.Float(), nullable=False),
        sa.Column("base_discount_type", base_discount_type, nullable=False),
        sa.Column("per_item_discount", sa.Float(), nullable=False),
        sa.Column("percent_discount", sa.Float(), nullable=False),
        sa.Column("percentage_off_subject", percentage_off_subject, nullable=False),
        sa.Column("has_free_shipping_for_matching_items", sa.Boolean(), nullable=False),
        sa.Column("has_free_shipping_for_order", sa.Boolean(), nullable=False),
        sa.Column("exclude_on_sale", sa.Boolean(), nullable=False),
        sa.Column("per_user_limit", sa.Integer(), nullable=False),
        sa.Column("per_email_limit", sa.Integer(), nullable=False),
        sa.Column("total_discount_use_limit", sa.Integer(), nullable=False),
        sa.Column("total_discount_uses", sa.Integer(), nullable=False),
        sa.Column("order_condition", sa.JSON(), nullable=True),
        sa.Column("customer_condition", sa.JSON(), nullable=True),
        sa.Column("shipping_address_condition", sa.JSON(), nullable=True),
        sa.Column("billing_address_condition", sa.JSON(), nullable=True),
        sa.Column("order_condition_formula", sa.Text(), nullable=True),
        sa.Column("date_created", sa.DateTime(), nullable=True),
        sa.Column("date_updated", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_discounts_id"), "discounts", ["id"], unique=False)
    op.create_index(op.f("ix_discounts_enabled"), "discounts", ["enabled"], unique=False)

    op.create_table(
        "discount_purchasables",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("discount_id", sa.Integer(), nullable=False),
        sa.Column("purchasable_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["discount_id"], ["discounts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["purchasable_id"], ["purchasables.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("discount_id", "purchasable_id", name="uq_discount_purchasable"),
    )
    op.create_index(op.f("ix_discount_purchasables_id"), "discount_purchasables", ["id"], unique=False)
    op.create_index(
        op.f("ix_discount_purchasables_discount_id"), "discount_purchasables", ["discount_id"], unique=False
    )

    op.create_table(
        "discount_categories",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("discount_id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["discount_id"], ["discounts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("discount_id", "category_id", name="uq_discount_category"),
    )
    op.create_index(op.f("ix_discount_categories_id"), "discount_categories", ["id"], unique=False)
    op.create_index(
        op.f("ix_discount_categories_discount_id"), "discount_categories", ["discount_id"], unique=False
    )

    op.create_table(
        "coupons",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(length=255), nullable=False),
        sa.Column("discount_id", sa.Integer(), nullable=False),
        sa.Column("max_uses", sa.Integer(), nullable=True),
        sa.Column("uses", sa.Integer(), nullable=False),
        sa.Column("date_created", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["discount_id"], ["discounts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_coupons_id"), "coupons", ["id"], unique=False)
    op.create_index(op.f("ix_coupons_code"), "coupons", ["code"], unique=True)
    op.create_index(op.f("ix_coupons_discount_id"), "coupons", ["discount_id"], unique=False)

    op.create_table(
        "customer_discount_uses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("discount_id", sa.Integer(), nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("uses", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["discount_id"], ["discounts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("customer_id", "discount_id", name="uq_customer_discount_use"),
    )
    op.create_index(op.f("ix_customer_discount_uses_id"), "customer_discount_uses", ["id"], unique=False)
    op.create_index(
        op.f("ix_customer_discount_uses_discount_id"), "customer_discount_uses", ["discount_id"], unique=False
    )

    op.create_table(
        "email_discount_uses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("discount_id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("uses", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["discount_id"], ["discounts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", "discount_id", name="uq_email_discount_use"),
    )
    op.create_index(op.f("ix_email_discount_uses_id"), "email_discount_uses", ["id"], unique=False)
    op.create_index(
        op.f("ix_email_discount_uses_discount_id"), "email_discount_uses", ["discount_id"], unique=False
    )

    op.create_table(
        "orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("number", sa.String(length=50), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("coupon_code", sa.String(length=255), nullable=True),
        sa.Column("currency", sa.String(length=3), nullable=True),
        sa.Column("customer_id", sa.Integer(), nullable=True),
        sa.Column("shipping_address_id", sa.Integer(), nullable=True),
        sa.Column("billing_address_id", sa.Integer(), nullable=True),
        sa.Column("is_completed", sa.Boolean(), nullable=False),
        sa.Column("date_ordered", sa.DateTime(), nullable=True),
        sa.Column("field_values", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"]),
        sa.ForeignKeyConstraint(["shipping_address_id"], ["addresses.id"]),
        sa.ForeignKeyConstraint(["billing_address_id"], ["addresses.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_orders_id"), "orders", ["id"], unique=False)
    op.create_index(op.f("ix_orders_number"), "orders", ["number"], unique=True)
    op.create_index(op.f("ix_orders_created_at"), "orders", ["created_at"], unique=False)

    op.create_table(
        "line_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("purchasable_id", sa.Integer(), nullable=True),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("sku", sa.String(length=100), nullable=True),
        sa.Column("qty", sa.Integer(), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("sale_price", sa.Float(), nullable=False),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["purchasable_id"], ["purchasables.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_line_items_id"), "line_items", ["id"], unique=False)
    op.create_index(op.f("ix_line_items_order_id"), "line_items", ["order_id"], unique=False)

    op.create_table(
        "order_adjustments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("order_id", sa.Integer(), nullable=False),
        sa.Column("line_item_id", sa.Integer(), nullable=True),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("source_snapshot", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["line_item_id"], ["line_items.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_order_adjustments_id"), "order_adjustments", ["id"], unique=False)
    op.create_index(op.f("ix_order_adjustments_order_id"), "order_adjustments", ["order_id"], unique=False)


def downgrade() -> None:
    for table in (
        "order_adjustments",
        "line_items",
        "orders",
        "email_discount_uses",
        "customer_discount_uses",
        "coupons",
        "discount_categories",
        "discount_purchasables",
        "discounts",
        "payment_currencies",
        "purchasables",
        "category_relations",
        "categories",
        "addresses",
        "customers",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum_type in (percentage_off_subject, base_discount_type, category_relationship_type, applied_to):
        enum_type.drop(bind, checkfirst=True)
