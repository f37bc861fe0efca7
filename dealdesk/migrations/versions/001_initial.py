"""Initial DealDesk schema.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa

revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _owner() -> sa.Column:
    return sa.Column(
        "user_id", sa.Uuid(), sa.ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False
    )


def upgrade() -> None:
    op.create_table(
        "user_account",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100)),
        sa.Column("last_name", sa.String(100)),
        sa.Column("role", sa.String(24), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_user_account_email", "user_account", ["email"], unique=True)
    op.create_index("ix_user_account_created_at", "user_account", ["created_at"])

    op.create_table(
        "contact",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _owner(),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100)),
        sa.Column("last_name", sa.String(100)),
        sa.Column("phone", sa.String(50)),
        sa.Column("company_name", sa.String(200)),
        sa.Column("data", sa.JSON()),
        *_timestamps(),
    )
    op.create_index("ix_contact_email", "contact", ["email"], unique=True)
    op.create_index("ix_contact_phone", "contact", ["phone"])
    op.create_index("ix_contact_user_id", "contact", ["user_id"])
    op.create_index("ix_contact_created_at", "contact", ["created_at"])

    op.create_table(
        "pipeline",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _owner(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.String(500)),
        *_timestamps(),
    )
    op.create_index("ix_pipeline_user_id", "pipeline", ["user_id"])
    op.create_index("ix_pipeline_created_at", "pipeline", ["created_at"])

    op.create_table(
        "pipeline_stage",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "pipeline_id", sa.Uuid(), sa.ForeignKey("pipeline.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("pipeline_id", "name", name="uq_stage_pipeline_name"),
    )
    op.create_index("ix_pipeline_stage_pipeline_id", "pipeline_stage", ["pipeline_id"])
    op.create_index("ix_pipeline_stage_created_at", "pipeline_stage", ["created_at"])

    op.create_table(
        "deal",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _owner(),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("value", sa.Float(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False),
        sa.Column(
            "pipeline_id", sa.Uuid(), sa.ForeignKey("pipeline.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column(
            "stage_id", sa.Uuid(), sa.ForeignKey("pipeline_stage.id", ondelete="CASCADE"), nullable=False
        ),
        sa.Column("contact_id", sa.Uuid(), sa.ForeignKey("contact.id", ondelete="SET NULL")),
        sa.Column("external_ref", sa.String(200)),
        sa.Column("data", sa.JSON()),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "external_ref", name="uq_deal_user_external_ref"),
    )
    op.create_index("ix_deal_identity", "deal", ["user_id", "pipeline_id", "title"])
    op.create_index("ix_deal_user_id", "deal", ["user_id"])
    op.create_index("ix_deal_pipeline_id", "deal", ["pipeline_id"])
    op.create_index("ix_deal_stage_id", "deal", ["stage_id"])
    op.create_index("ix_deal_contact_id", "deal", ["contact_id"])
    op.create_index("ix_deal_created_at", "deal", ["created_at"])

    op.create_table(
        "activity",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _owner(),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("note", sa.Text()),
        sa.Column("contact_id", sa.Uuid(), sa.ForeignKey("contact.id", ondelete="SET NULL")),
        sa.Column("deal_id", sa.Uuid(), sa.ForeignKey("deal.id", ondelete="SET NULL")),
        sa.Column("data", sa.JSON()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_activity_user_id", "activity", ["user_id"])
    op.create_index("ix_activity_type", "activity", ["type"])
    op.create_index("ix_activity_contact_id", "activity", ["contact_id"])
    op.create_index("ix_activity_deal_id", "activity", ["deal_id"])
    op.create_index("ix_activity_created_at", "activity", ["created_at"])

    op.create_table(
        "task",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _owner(),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("contact_id", sa.Uuid(), sa.ForeignKey("contact.id", ondelete="SET NULL")),
        sa.Column("due_date", sa.Date()),
        sa.Column("status", sa.String(50), nullable=False),
        sa.Column("assigned_to", sa.String(100)),
        *_timestamps(),
    )
    op.create_index("ix_task_user_id", "task", ["user_id"])
    op.create_index("ix_task_contact_id", "task", ["contact_id"])
    op.create_index("ix_task_created_at", "task", ["created_at"])

    op.create_table(
        "automation_workflow",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _owner(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("trigger_events", sa.JSON(), nullable=False),
        sa.Column("conditions", sa.JSON()),
        sa.Column("actions", sa.JSON(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_automation_workflow_user_id", "automation_workflow", ["user_id"])
    op.create_index("ix_automation_workflow_is_active", "automation_workflow", ["is_active"])
    op.create_index("ix_automation_workflow_created_at", "automation_workflow", ["created_at"])

    op.create_table(
        "integration",
        sa.Column("id", sa.Uuid(), primary_key=True),
        _owner(),
        sa.Column("provider", sa.String(50), nullable=False),
        sa.Column("credentials", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "provider", name="uq_integration_user_provider"),
    )
    op.create_index("ix_integration_user_id", "integration", ["user_id"])
    op.create_index("ix_integration_created_at", "integration", ["created_at"])

    op.create_table(
        "webhook_log",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("source", sa.String(50), nullable=False),
        sa.Column("endpoint", sa.String(200), nullable=False),
        sa.Column("delivery_id", sa.String(128), nullable=False),
        sa.Column("event_id", sa.String(200)),
        sa.Column("event_type", sa.String(100)),
        sa.Column("payload", sa.JSON()),
        sa.Column("status_code", sa.Integer()),
        sa.Column("error", sa.Text()),
        sa.Column("processed_at", sa.DateTime(timezone=True)),
        *_timestamps(),
        sa.UniqueConstraint("source", "delivery_id", name="uq_webhook_log_source_delivery"),
    )
    op.create_index("ix_webhook_log_source", "webhook_log", ["source"])
    op.create_index("ix_webhook_log_created_at", "webhook_log", ["created_at"])


def downgrade() -> None:
    for table in (
        "webhook_log",
        "integration",
        "automation_workflow",
        "task",
        "activity",
        "deal",
        "pipeline_stage",
        "pipeline",
        "contact",
        "user_account",
    ):
        op.drop_table(table)
