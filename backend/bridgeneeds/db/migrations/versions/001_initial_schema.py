"""
Initial schema: users, organizations, campaigns, cash and physical donations

Revision ID: 001
Revises:
Create Date: 2025-03-10
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create donation platform tables."""

    op.create_table(
        'users',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('verified', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('account_type', sa.String(20), nullable=False, server_default='individual'),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('created', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(), index=True),
        sa.Column('updated', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(), onupdate=sa.func.now()),
    )

    op.create_table(
        'organizations',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False, unique=True, index=True),
        sa.Column('slug', sa.String(200), nullable=False, unique=True, index=True),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('verification_status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('accepts_cash_donations', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('accepts_physical_donations', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('physical_donation_categories', sa.JSON, nullable=True),
        sa.Column('owner_id', sa.String(15), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('created', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(), index=True),
        sa.Column('updated', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(), onupdate=sa.func.now()),
    )

    op.create_table(
        'campaigns',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('organization_id', sa.String(15), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=True, index=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='draft'),
        sa.Column('goal_amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('raised_amount', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('currency', sa.String(3), nullable=False, server_default='USD'),
        # NULL falls back to the organization's settings
        sa.Column('accepts_cash_donations', sa.Boolean, nullable=True),
        sa.Column('accepts_physical_donations', sa.Boolean, nullable=True),
        sa.Column('physical_donation_categories', sa.JSON, nullable=True),
        sa.Column('created', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(), index=True),
        sa.Column('updated', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(), onupdate=sa.func.now()),
    )

    op.create_table(
        'donations',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False, server_default='USD'),
        sa.Column('donor_name', sa.String(255), nullable=False),
        sa.Column('donor_email', sa.String(255), nullable=False, index=True),
        sa.Column('donor_phone', sa.String(20), nullable=True),
        sa.Column('message', sa.Text, nullable=True),
        sa.Column('is_anonymous', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('is_recurring', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('frequency', sa.Enum('monthly', 'quarterly', 'yearly', name='donationfrequency'), nullable=True),
        sa.Column('payment_intent_id', sa.String(255), nullable=False),
        sa.Column('payment_method_id', sa.String(255), nullable=True),
        sa.Column('payment_status', sa.Enum('pending', 'processing', 'succeeded', 'failed', 'canceled', name='paymentstatus'), nullable=False, server_default='pending', index=True),
        sa.Column('processed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('target_type', sa.Enum('campaign', 'organization', 'general', name='donationtargettype'), nullable=False),
        sa.Column('target_id', sa.String(255), nullable=True),
        sa.Column('target_name', sa.String(255), nullable=False),
        sa.Column('user_id', sa.String(15), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('organization_id', sa.String(15), sa.ForeignKey('organizations.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('campaign_id', sa.String(15), sa.ForeignKey('campaigns.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('created', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(), index=True),
        sa.Column('updated', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(), onupdate=sa.func.now()),
    )

    op.create_table(
        'subscriptions',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('donation_id', sa.String(15), sa.ForeignKey('donations.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('subscription_id', sa.String(255), nullable=False, unique=True),
        sa.Column('status', sa.Enum('active', 'canceled', 'past_due', 'paused', name='subscriptionstatus'), nullable=False, server_default='active', index=True),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False, server_default='USD'),
        sa.Column('frequency', sa.Enum('monthly', 'quarterly', 'yearly', name='subscriptionfrequency'), nullable=False),
        sa.Column('customer_email', sa.String(255), nullable=False, index=True),
        sa.Column('customer_name', sa.String(255), nullable=False),
        sa.Column('target_type', sa.Enum('campaign', 'organization', 'general', name='subscriptiontargettype'), nullable=False),
        sa.Column('target_id', sa.String(255), nullable=True),
        sa.Column('target_name', sa.String(255), nullable=False),
        sa.Column('next_payment_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('canceled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(), index=True),
        sa.Column('updated', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(), onupdate=sa.func.now()),
    )

    op.create_table(
        'physical_donations',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('donor_name', sa.String(255), nullable=False),
        sa.Column('donor_email', sa.String(255), nullable=False, index=True),
        sa.Column('donor_phone', sa.String(20), nullable=True),
        sa.Column('message', sa.Text, nullable=True),
        sa.Column('is_anonymous', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('target_type', sa.Enum('campaign', 'organization', 'general', name='physicaltargettype'), nullable=False),
        sa.Column('target_id', sa.String(255), nullable=True),
        sa.Column('target_name', sa.String(255), nullable=False),
        sa.Column('user_id', sa.String(15), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('organization_id', sa.String(15), sa.ForeignKey('organizations.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('campaign_id', sa.String(15), sa.ForeignKey('campaigns.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('pickup_preference', sa.Enum('pickup', 'delivery', 'flexible', name='pickuppreference'), nullable=True),
        sa.Column('pickup_address', sa.Text, nullable=True),
        sa.Column('pickup_instructions', sa.Text, nullable=True),
        sa.Column('preferred_pickup_date', sa.Date, nullable=True),
        sa.Column('preferred_time_slot', sa.String(50), nullable=True),
        sa.Column('estimated_value', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('donation_status', sa.Enum('pending', 'confirmed', 'in_transit', 'received', 'cancelled', 'declined', name='physicaldonationstatus'), nullable=False, server_default='pending', index=True),
        sa.Column('coordinator_notes', sa.Text, nullable=True),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(), index=True),
        sa.Column('updated', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(), onupdate=sa.func.now()),
    )

    op.create_table(
        'donation_items',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('physical_donation_id', sa.String(15), sa.ForeignKey('physical_donations.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('position', sa.Integer, nullable=False, server_default='0'),
        sa.Column('category', sa.String(100), nullable=False, index=True),
        sa.Column('subcategory', sa.String(100), nullable=True),
        sa.Column('item_name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('quantity', sa.Integer, nullable=False),
        sa.Column('unit', sa.String(50), nullable=False, server_default='pcs'),
        sa.Column('condition', sa.Enum('new', 'like_new', 'good', 'fair', name='itemcondition'), nullable=True),
        sa.Column('estimated_value_per_unit', sa.Numeric(12, 2), nullable=True),
        sa.Column('total_estimated_value', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('special_handling_notes', sa.Text, nullable=True),
        sa.Column('expiry_date', sa.Date, nullable=True),
        sa.Column('is_fragile', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('requires_refrigeration', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('item_status', sa.Enum('pending', 'accepted', 'declined', 'received', name='donationitemstatus'), nullable=False, server_default='pending'),
        sa.Column('decline_reason', sa.Text, nullable=True),
        sa.Column('created', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(), index=True),
        sa.Column('updated', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now(), onupdate=sa.func.now()),
    )


def downgrade() -> None:
    """Drop donation platform tables."""
    # Drop tables in reverse order
    op.drop_table('donation_items')
    op.drop_table('physical_donations')
    op.drop_table('subscriptions')
    op.drop_table('donations')
    op.drop_table('campaigns')
    op.drop_table('organizations')
    op.drop_table('users')

    # Drop enum types
    op.execute('DROP TYPE IF EXISTS donationitemstatus')
    op.execute('DROP TYPE IF EXISTS itemcondition')
    op.execute('DROP TYPE IF EXISTS physicaldonationstatus')
    op.execute('DROP TYPE IF EXISTS pickuppreference')
    op.execute('DROP TYPE IF EXISTS physicaltargettype')
    op.execute('DROP TYPE IF EXISTS subscriptiontargettype')
    op.execute('DROP TYPE IF EXISTS subscriptionfrequency')
    op.execute('DROP TYPE IF EXISTS subscriptionstatus')
    op.execute('DROP TYPE IF EXISTS donationtargettype')
    op.execute('DROP TYPE IF EXISTS paymentstatus')
    op.execute('DROP TYPE IF EXISTS donationfrequency')
