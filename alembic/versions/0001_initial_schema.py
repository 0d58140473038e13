"""initial schema: teams, frameworks, controls, kpis, kpi_executions

Revision ID: 0001_initial_schema
Revises:
Create Date: 2024-03-01 09:00:00
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "teams",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime, nullable=False),
    )
    op.create_index("ix_teams_id", "teams", ["id"])

    op.create_table(
        "team_members",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("team_id", sa.Integer, sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.UniqueConstraint("team_id", "user_id", name="ux_team_members"),
    )
    op.create_index("ix_team_members_team_id", "team_members", ["team_id"])
    op.create_index("ix_team_members_user_id", "team_members", ["user_id"])

    op.create_table(
        "team_permissions",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("team_id", sa.Integer, sa.ForeignKey("teams.id", ondelete="CASCADE"), nullable=False),
        sa.Column("permission_key", sa.String(length=120), nullable=False),
        sa.UniqueConstraint("team_id", "permission_key", name="ux_team_permissions"),
    )
    op.create_index("ix_team_permissions_team_id", "team_permissions", ["team_id"])
    op.create_index("ix_team_permissions_permission_key", "team_permissions", ["permission_key"])

    op.create_table(
        "frameworks",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False, unique=True),
    )
    op.create_index("ix_frameworks_id", "frameworks", ["id"])

    op.create_table(
        "controls",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("control_code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("framework_id", sa.Integer, sa.ForeignKey("frameworks.id", ondelete="SET NULL"), nullable=True),
        sa.Column("team_id", sa.Integer, sa.ForeignKey("teams.id", ondelete="SET NULL"), nullable=True),
        sa.Column("frequency", sa.String(length=80), nullable=True),
        sa.Column("frequency_key", sa.String(length=30), nullable=True),
        sa.Column("risk_classification", sa.String(length=20), nullable=True),
        sa.Column("owner_name", sa.String(length=255), nullable=True),
        sa.Column("owner_email", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
        sa.CheckConstraint(
            "status IN ('active', 'inactive', 'pending')",
            name="ck_controls_status_allowed",
        ),
    )
    op.create_index("ix_controls_id", "controls", ["id"])
    op.create_index("ix_controls_control_code", "controls", ["control_code"], unique=True)
    op.create_index("ix_controls_framework_id", "controls", ["framework_id"])
    op.create_index("ix_controls_team_id", "controls", ["team_id"])
    op.create_index("ix_controls_risk_classification", "controls", ["risk_classification"])
    op.create_index("ix_controls_status", "controls", ["status"])
    op.create_index("ix_controls_team_framework", "controls", ["team_id", "framework_id"])

    op.create_table(
        "kpis",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("control_id", sa.Integer, sa.ForeignKey("controls.id", ondelete="CASCADE"), nullable=False),
        sa.Column("kpi_code", sa.String(length=50), nullable=False),
        sa.Column("kpi_name", sa.String(length=255), nullable=False),
        sa.Column("kpi_type", sa.String(length=30), nullable=True),
        sa.Column("target_operator", sa.String(length=30), nullable=True),
        sa.Column("target_value", sa.Float, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime, nullable=False),
        sa.Column("updated_at", sa.DateTime, nullable=False),
    )
    op.create_index("ix_kpis_id", "kpis", ["id"])
    op.create_index("ix_kpis_control_id", "kpis", ["control_id"])
    op.create_index("ix_kpis_kpi_code", "kpis", ["kpi_code"])

    op.create_table(
        "kpi_executions",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("kpi_id", sa.Integer, sa.ForeignKey("kpis.id", ondelete="CASCADE"), nullable=False),
        sa.Column("control_id", sa.Integer, sa.ForeignKey("controls.id", ondelete="CASCADE"), nullable=False),
        sa.Column("period_start", sa.Date, nullable=True),
        sa.Column("period_end", sa.Date, nullable=False),
        sa.Column("result_numeric", sa.Float, nullable=True),
        sa.Column("result_boolean", sa.Boolean, nullable=True),
        sa.Column("auto_status", sa.String(length=20), nullable=True),
        sa.Column("workflow_status", sa.String(length=20), nullable=False, server_default="draft"),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False),
    )
    op.create_index("ix_kpi_executions_id", "kpi_executions", ["id"])
    op.create_index("ix_kpi_executions_kpi_id", "kpi_executions", ["kpi_id"])
    op.create_index("ix_kpi_executions_control_id", "kpi_executions", ["control_id"])
    op.create_index("ix_kpi_executions_period_end", "kpi_executions", ["period_end"])
    op.create_index("ix_kpi_executions_auto_status", "kpi_executions", ["auto_status"])
    op.create_index("ix_kpi_executions_workflow_status", "kpi_executions", ["workflow_status"])
    op.create_index("ix_kpi_executions_created_at", "kpi_executions", ["created_at"])
    op.create_index("ix_exec_kpi_period", "kpi_executions", ["kpi_id", "period_end"])
    op.create_index("ix_exec_control_period", "kpi_executions", ["control_id", "period_end"])


def downgrade():
    op.drop_table("kpi_executions")
    op.drop_table("kpis")
    op.drop_table("controls")
    op.drop_table("frameworks")
    op.drop_table("team_permissions")
    op.drop_table("team_members")
    op.drop_table("teams")
