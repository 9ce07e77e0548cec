"""initial_school_assets_schema

Revision ID: d1e2f3a4b5c6
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = 'd1e2f3a4b5c6'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps(*names: str, nullable: bool = True) -> list[sa.Column]:
    return [sa.Column(name, sa.DateTime(timezone=True), nullable=nullable) for name in names]


def upgrade() -> None:
    # ─── Users & permissions ─────────────────────────────────────────────
    op.create_table(
        'departments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_departments_id'), 'departments', ['id'], unique=False)
    op.create_index(op.f('ix_departments_code'), 'departments', ['code'], unique=True)

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('role', sa.String(length=32), nullable=False),
        sa.Column('department_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps('created_at', 'updated_at', nullable=False),
        sa.ForeignKeyConstraint(['department_id'], ['departments.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_users_id'), 'users', ['id'], unique=False)
    op.create_index(op.f('ix_users_username'), 'users', ['username'], unique=True)
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=True)
    op.create_index(op.f('ix_users_department_id'), 'users', ['department_id'], unique=False)

    op.create_table(
        'role_permissions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False),
        sa.Column('module', sa.String(length=64), nullable=False),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('scope', sa.String(length=16), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('role', 'module', 'action', name='uq_role_module_action'),
    )
    op.create_index(op.f('ix_role_permissions_id'), 'role_permissions', ['id'], unique=False)
    op.create_index(op.f('ix_role_permissions_role'), 'role_permissions', ['role'], unique=False)

    # ─── Assets & assignments ────────────────────────────────────────────
    op.create_table(
        'assets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('asset_type', sa.String(length=8), nullable=False),
        sa.Column('category', sa.String(length=128), nullable=True),
        sa.Column('serial_number', sa.String(length=128), nullable=True),
        sa.Column('purchase_date', sa.Date(), nullable=True),
        sa.Column('purchase_price', sa.Numeric(12, 2), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps('created_at', 'updated_at', nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_assets_id'), 'assets', ['id'], unique=False)
    op.create_index(op.f('ix_assets_code'), 'assets', ['code'], unique=True)
    op.create_index(op.f('ix_assets_status'), 'assets', ['status'], unique=False)

    op.create_table(
        'assignments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('assignment_number', sa.String(length=32), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('academic_year', sa.String(length=16), nullable=False),
        sa.Column('term', sa.Integer(), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('closed_by', sa.Integer(), nullable=True),
        sa.Column('closure_notes', sa.String(length=2000), nullable=True),
        sa.Column('closure_signature', sa.Text(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.ForeignKeyConstraint(['closed_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_assignments_id'), 'assignments', ['id'], unique=False)
    op.create_index(op.f('ix_assignments_assignment_number'), 'assignments', ['assignment_number'], unique=True)
    op.create_index(op.f('ix_assignments_user_id'), 'assignments', ['user_id'], unique=False)

    op.create_table(
        'borrow_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('assignment_id', sa.Integer(), nullable=False),
        sa.Column('transaction_number', sa.String(length=32), nullable=False),
        sa.Column('borrow_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('notes', sa.String(length=2000), nullable=True),
        sa.Column('is_signed', sa.Boolean(), nullable=False),
        sa.Column('signed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('signature', sa.Text(), nullable=True),
        sa.Column('signature_token', sa.String(length=64), nullable=True),
        sa.Column('signature_token_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_cancelled', sa.Boolean(), nullable=False),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_by', sa.Integer(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['assignment_id'], ['assignments.id']),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.ForeignKeyConstraint(['cancelled_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_borrow_transactions_id'), 'borrow_transactions', ['id'], unique=False)
    op.create_index(op.f('ix_borrow_transactions_assignment_id'), 'borrow_transactions', ['assignment_id'], unique=False)
    op.create_index(
        op.f('ix_borrow_transactions_transaction_number'), 'borrow_transactions', ['transaction_number'], unique=True
    )
    op.create_index(
        op.f('ix_borrow_transactions_signature_token'), 'borrow_transactions', ['signature_token'], unique=True
    )

    op.create_table(
        'borrow_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('borrow_transaction_id', sa.Integer(), nullable=False),
        sa.Column('asset_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['borrow_transaction_id'], ['borrow_transactions.id']),
        sa.ForeignKeyConstraint(['asset_id'], ['assets.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_borrow_items_id'), 'borrow_items', ['id'], unique=False)
    op.create_index(op.f('ix_borrow_items_borrow_transaction_id'), 'borrow_items', ['borrow_transaction_id'], unique=False)
    op.create_index(op.f('ix_borrow_items_asset_id'), 'borrow_items', ['asset_id'], unique=False)

    op.create_table(
        'return_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('assignment_id', sa.Integer(), nullable=False),
        sa.Column('return_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('checked_by', sa.Integer(), nullable=True),
        sa.Column('checker_signature', sa.Text(), nullable=True),
        sa.Column('notes', sa.String(length=2000), nullable=True),
        sa.ForeignKeyConstraint(['assignment_id'], ['assignments.id']),
        sa.ForeignKeyConstraint(['checked_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_return_transactions_id'), 'return_transactions', ['id'], unique=False)
    op.create_index(op.f('ix_return_transactions_assignment_id'), 'return_transactions', ['assignment_id'], unique=False)

    op.create_table(
        'return_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('return_transaction_id', sa.Integer(), nullable=False),
        sa.Column('borrow_item_id', sa.Integer(), nullable=False),
        sa.Column('condition', sa.String(length=16), nullable=False),
        sa.Column('damage_notes', sa.String(length=2000), nullable=True),
        sa.Column('damage_charge', sa.Numeric(12, 2), nullable=False),
        sa.ForeignKeyConstraint(['return_transaction_id'], ['return_transactions.id']),
        sa.ForeignKeyConstraint(['borrow_item_id'], ['borrow_items.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('borrow_item_id'),
    )
    op.create_index(op.f('ix_return_items_id'), 'return_items', ['id'], unique=False)
    op.create_index(op.f('ix_return_items_return_transaction_id'), 'return_items', ['return_transaction_id'], unique=False)

    # ─── Stationary stock ────────────────────────────────────────────────
    op.create_table(
        'stationary_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_code', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('uom', sa.String(length=32), nullable=False),
        sa.Column('unit_cost', sa.Numeric(12, 2), nullable=True),
        sa.Column('reorder_level', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_stationary_items_id'), 'stationary_items', ['id'], unique=False)
    op.create_index(op.f('ix_stationary_items_item_code'), 'stationary_items', ['item_code'], unique=True)

    op.create_table(
        'stock_locations',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_stock_locations_id'), 'stock_locations', ['id'], unique=False)
    op.create_index(op.f('ix_stock_locations_code'), 'stock_locations', ['code'], unique=True)

    op.create_table(
        'stock_levels',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('location_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_cost', sa.Numeric(12, 2), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['item_id'], ['stationary_items.id']),
        sa.ForeignKeyConstraint(['location_id'], ['stock_locations.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('item_id', 'location_id', name='uq_stock_item_location'),
        sa.CheckConstraint('quantity >= 0', name='ck_stock_quantity_non_negative'),
    )
    op.create_index(op.f('ix_stock_levels_id'), 'stock_levels', ['id'], unique=False)
    op.create_index(op.f('ix_stock_levels_item_id'), 'stock_levels', ['item_id'], unique=False)
    op.create_index(op.f('ix_stock_levels_location_id'), 'stock_levels', ['location_id'], unique=False)

    op.create_table(
        'stock_movements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('location_id', sa.Integer(), nullable=False),
        sa.Column('movement_type', sa.String(length=16), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('reference', sa.String(length=64), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['item_id'], ['stationary_items.id']),
        sa.ForeignKeyConstraint(['location_id'], ['stock_locations.id']),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_stock_movements_id'), 'stock_movements', ['id'], unique=False)
    op.create_index(op.f('ix_stock_movements_item_id'), 'stock_movements', ['item_id'], unique=False)
    op.create_index(op.f('ix_stock_movements_location_id'), 'stock_movements', ['location_id'], unique=False)

    op.create_table(
        'vendors',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('vendor_code', sa.String(length=32), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('contact_person', sa.String(length=255), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_vendors_id'), 'vendors', ['id'], unique=False)
    op.create_index(op.f('ix_vendors_vendor_code'), 'vendors', ['vendor_code'], unique=True)

    # ─── Requisitions ────────────────────────────────────────────────────
    op.create_table(
        'stationary_requisitions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('requisition_no', sa.String(length=32), nullable=False),
        sa.Column('requested_by', sa.Integer(), nullable=False),
        sa.Column('requested_for', sa.String(length=16), nullable=False),
        sa.Column('department_id', sa.Integer(), nullable=False),
        sa.Column('purpose', sa.String(length=1000), nullable=True),
        sa.Column('urgency', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('total_estimated_cost', sa.Numeric(12, 2), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_l1_by', sa.Integer(), nullable=True),
        sa.Column('approved_l1_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_l2_by', sa.Integer(), nullable=True),
        sa.Column('approved_l2_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejected_by', sa.Integer(), nullable=True),
        sa.Column('rejected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejection_reason', sa.String(length=2000), nullable=True),
        sa.Column('issue_location_id', sa.Integer(), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['requested_by'], ['users.id']),
        sa.ForeignKeyConstraint(['department_id'], ['departments.id']),
        sa.ForeignKeyConstraint(['approved_l1_by'], ['users.id']),
        sa.ForeignKeyConstraint(['approved_l2_by'], ['users.id']),
        sa.ForeignKeyConstraint(['rejected_by'], ['users.id']),
        sa.ForeignKeyConstraint(['issue_location_id'], ['stock_locations.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_stationary_requisitions_id'), 'stationary_requisitions', ['id'], unique=False)
    op.create_index(
        op.f('ix_stationary_requisitions_requisition_no'), 'stationary_requisitions', ['requisition_no'], unique=True
    )
    op.create_index(
        op.f('ix_stationary_requisitions_requested_by'), 'stationary_requisitions', ['requested_by'], unique=False
    )
    op.create_index(
        op.f('ix_stationary_requisitions_department_id'), 'stationary_requisitions', ['department_id'], unique=False
    )
    op.create_index(op.f('ix_stationary_requisitions_status'), 'stationary_requisitions', ['status'], unique=False)

    op.create_table(
        'requisition_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('requisition_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('quantity_requested', sa.Integer(), nullable=False),
        sa.Column('quantity_approved', sa.Integer(), nullable=True),
        sa.Column('quantity_issued', sa.Integer(), nullable=False),
        sa.Column('estimated_unit_cost', sa.Numeric(12, 2), nullable=False),
        sa.ForeignKeyConstraint(['requisition_id'], ['stationary_requisitions.id']),
        sa.ForeignKeyConstraint(['item_id'], ['stationary_items.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_requisition_items_id'), 'requisition_items', ['id'], unique=False)
    op.create_index(op.f('ix_requisition_items_requisition_id'), 'requisition_items', ['requisition_id'], unique=False)

    # ─── Purchase orders ─────────────────────────────────────────────────
    op.create_table(
        'stationary_purchase_orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('po_number', sa.String(length=32), nullable=False),
        sa.Column('vendor_id', sa.Integer(), nullable=False),
        sa.Column('location_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=24), nullable=False),
        sa.Column('order_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expected_delivery', sa.Date(), nullable=True),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False),
        sa.Column('tax_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('shipping_cost', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('notes', sa.String(length=2000), nullable=True),
        sa.Column('created_by', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('approved_by', sa.Integer(), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('received_by', sa.Integer(), nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id']),
        sa.ForeignKeyConstraint(['location_id'], ['stock_locations.id']),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.ForeignKeyConstraint(['approved_by'], ['users.id']),
        sa.ForeignKeyConstraint(['received_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_stationary_purchase_orders_id'), 'stationary_purchase_orders', ['id'], unique=False)
    op.create_index(
        op.f('ix_stationary_purchase_orders_po_number'), 'stationary_purchase_orders', ['po_number'], unique=True
    )
    op.create_index(
        op.f('ix_stationary_purchase_orders_vendor_id'), 'stationary_purchase_orders', ['vendor_id'], unique=False
    )
    op.create_index(op.f('ix_stationary_purchase_orders_status'), 'stationary_purchase_orders', ['status'], unique=False)

    op.create_table(
        'purchase_order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_order_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('quantity_ordered', sa.Integer(), nullable=False),
        sa.Column('quantity_received', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_price', sa.Numeric(12, 2), nullable=False),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['stationary_purchase_orders.id']),
        sa.ForeignKeyConstraint(['item_id'], ['stationary_items.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity_received >= 0', name='ck_po_item_received_non_negative'),
        sa.CheckConstraint('quantity_received <= quantity_ordered', name='ck_po_item_no_over_receipt'),
    )
    op.create_index(op.f('ix_purchase_order_items_id'), 'purchase_order_items', ['id'], unique=False)
    op.create_index(
        op.f('ix_purchase_order_items_purchase_order_id'), 'purchase_order_items', ['purchase_order_id'], unique=False
    )

    # ─── Tickets ─────────────────────────────────────────────────────────
    op.create_table(
        'tickets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ticket_number', sa.String(length=32), nullable=False),
        sa.Column('type', sa.String(length=8), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('priority', sa.String(length=16), nullable=False),
        sa.Column('reported_by', sa.Integer(), nullable=False),
        sa.Column('reported_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('asset_id', sa.Integer(), nullable=True),
        sa.Column('sla_deadline', sa.DateTime(timezone=True), nullable=True),
        sa.Column('last_sla_status', sa.String(length=16), nullable=True),
        sa.Column('assigned_to', sa.Integer(), nullable=True),
        *_timestamps('assigned_at', 'started_at', 'resolved_at'),
        sa.Column('resolution', sa.Text(), nullable=True),
        *_timestamps('closed_at', 'cancelled_at'),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['reported_by'], ['users.id']),
        sa.ForeignKeyConstraint(['asset_id'], ['assets.id']),
        sa.ForeignKeyConstraint(['assigned_to'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_tickets_id'), 'tickets', ['id'], unique=False)
    op.create_index(op.f('ix_tickets_ticket_number'), 'tickets', ['ticket_number'], unique=True)
    op.create_index(op.f('ix_tickets_status'), 'tickets', ['status'], unique=False)
    op.create_index(op.f('ix_tickets_reported_by'), 'tickets', ['reported_by'], unique=False)
    op.create_index(op.f('ix_tickets_assigned_to'), 'tickets', ['assigned_to'], unique=False)

    op.create_table(
        'ticket_activities',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('ticket_id', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(length=32), nullable=False),
        sa.Column('from_status', sa.String(length=16), nullable=True),
        sa.Column('to_status', sa.String(length=16), nullable=True),
        sa.Column('details', sa.String(length=2000), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['ticket_id'], ['tickets.id']),
        sa.ForeignKeyConstraint(['actor_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_ticket_activities_id'), 'ticket_activities', ['id'], unique=False)
    op.create_index(op.f('ix_ticket_activities_ticket_id'), 'ticket_activities', ['ticket_id'], unique=False)


def downgrade() -> None:
    # Reverse dependency order; indexes go with their tables
    for table in [
        'ticket_activities',
        'tickets',
        'purchase_order_items',
        'stationary_purchase_orders',
        'requisition_items',
        'stationary_requisitions',
        'vendors',
        'stock_movements',
        'stock_levels',
        'stock_locations',
        'stationary_items',
        'return_items',
        'return_transactions',
        'borrow_items',
        'borrow_transactions',
        'assignments',
        'assets',
        'role_permissions',
        'users',
        'departments',
    ]:
        op.drop_table(table)
