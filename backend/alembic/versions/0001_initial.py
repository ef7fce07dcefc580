"""Initial schema: clients, products, projects, notes, time, activity, onboarding.

Revision ID: 0001
Revises: (none)
Create Date: 2026-10-19
"""

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa


def _timestamps(updated: bool = True) -> list[sa.Column]:
    cols = [sa.Column("created_at", sa.DateTime(), server_default=sa.func.now())]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()))
    return cols


def upgrade() -> None:
    # ── Clients ──────────────────────────────────────────────

    op.create_table(
        "clients",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("contact_first_name", sa.String(100)),
        sa.Column("contact_last_name", sa.String(100)),
        sa.Column("contact_email", sa.String(255)),
        sa.Column("contact_phone", sa.String(50)),
        sa.Column("domain", sa.String(255)),
        sa.Column("address", sa.Text()),
        sa.Column("notes", sa.Text()),
        sa.Column("is_active", sa.Boolean(), server_default="true"),
        *_timestamps(),
    )
    op.create_index("ix_clients_name", "clients", ["name"])

    op.create_table(
        "client_services",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("client_id", sa.String(36), sa.ForeignKey("clients.id"), nullable=False),
        sa.Column("service_type", sa.String(50), nullable=False),
        sa.Column("config", sa.JSON(), server_default="{}"),
        sa.Column("is_active", sa.Boolean(), server_default="true"),
        *_timestamps(),
        sa.UniqueConstraint("client_id", "service_type", name="uq_client_service_type"),
    )
    op.create_index("ix_client_services_client_id", "client_services", ["client_id"])

    # ── Products ─────────────────────────────────────────────

    op.create_table(
        "products",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("domain", sa.String(255)),
        sa.Column("description", sa.Text()),
        sa.Column("is_active", sa.Boolean(), server_default="true"),
        *_timestamps(),
    )
    op.create_index("ix_products_name", "products", ["name"])

    op.create_table(
        "product_modules",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("product_id", sa.String(36), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("module_type", sa.String(50), nullable=False),
        sa.Column("config", sa.JSON(), server_default="{}"),
        sa.Column("is_active", sa.Boolean(), server_default="true"),
        *_timestamps(),
        sa.UniqueConstraint("product_id", "module_type", name="uq_product_module_type"),
    )
    op.create_index("ix_product_modules_product_id", "product_modules", ["product_id"])

    # ── Projects / phases / tasks ────────────────────────────

    op.create_table(
        "projects",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("domain", sa.String(20), nullable=False),
        sa.Column("domain_ref_id", sa.String(36)),
        sa.Column("project_type", sa.String(50), server_default="general"),
        sa.Column("status", sa.String(20), server_default="active"),
        sa.Column("priority", sa.String(20), server_default="medium"),
        sa.Column("due_date", sa.DateTime()),
        sa.Column("estimated_budget", sa.Float()),
        *_timestamps(),
    )
    op.create_index("ix_projects_domain", "projects", ["domain"])
    op.create_index("ix_projects_domain_ref_id", "projects", ["domain_ref_id"])
    op.create_index("ix_projects_status", "projects", ["status"])

    op.create_table(
        "project_phases",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("project_id", sa.String(36), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("sort_order", sa.Integer(), server_default="0"),
        sa.Column("status", sa.String(20), server_default="pending"),
        sa.Column("depends_on_phase_id", sa.String(36), sa.ForeignKey("project_phases.id")),
        sa.Column("estimated_duration_days", sa.Integer()),
        *_timestamps(),
    )
    op.create_index("ix_project_phases_project_id", "project_phases", ["project_id"])

    op.create_table(
        "tasks",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("project_id", sa.String(36), sa.ForeignKey("projects.id")),
        sa.Column("phase_id", sa.String(36), sa.ForeignKey("project_phases.id")),
        sa.Column("status", sa.String(20), server_default="todo"),
        sa.Column("priority", sa.String(20), server_default="medium"),
        sa.Column("due_date", sa.DateTime()),
        sa.Column("depends_on_task_id", sa.String(36), sa.ForeignKey("tasks.id")),
        sa.Column("sort_order", sa.Integer(), server_default="0"),
        sa.Column("completed_at", sa.DateTime()),
        *_timestamps(),
    )
    op.create_index("ix_tasks_project_id", "tasks", ["project_id"])
    op.create_index("ix_tasks_status", "tasks", ["status"])
    op.create_index("ix_tasks_due_date", "tasks", ["due_date"])

    # ── Notes ────────────────────────────────────────────────

    op.create_table(
        "notes",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("domain", sa.String(20), nullable=False),
        sa.Column("domain_ref_id", sa.String(36)),
        sa.Column("note_type", sa.String(30), server_default="general"),
        sa.Column("is_pinned", sa.Boolean(), server_default="false"),
        sa.Column("has_pending_actions", sa.Boolean(), server_default="false"),
        sa.Column("imported_from", sa.String(50)),
        sa.Column("imported_at", sa.DateTime()),
        *_timestamps(),
    )
    op.create_index("ix_notes_domain", "notes", ["domain"])
    op.create_index("ix_notes_domain_ref_id", "notes", ["domain_ref_id"])

    op.create_table(
        "note_actions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("note_id", sa.String(36), sa.ForeignKey("notes.id"), nullable=False),
        sa.Column("detected_text", sa.Text(), nullable=False),
        sa.Column("suggested_action_type", sa.String(50), nullable=False),
        sa.Column("suggested_action_data", sa.JSON()),
        sa.Column("status", sa.String(20), server_default="pending"),
        sa.Column("executed_ref_type", sa.String(50)),
        sa.Column("executed_ref_id", sa.String(36)),
        *_timestamps(updated=False),
    )
    op.create_index("ix_note_actions_note_id", "note_actions", ["note_id"])
    op.create_index("ix_note_actions_status", "note_actions", ["status"])

    # ── Time tracking ────────────────────────────────────────

    op.create_table(
        "time_entries",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("domain", sa.String(20), nullable=False),
        sa.Column("module", sa.String(50), nullable=False),
        sa.Column("client_id", sa.String(36), sa.ForeignKey("clients.id")),
        sa.Column("project_id", sa.String(36)),
        sa.Column("activity_description", sa.Text()),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("ended_at", sa.DateTime()),
        sa.Column("duration_minutes", sa.Integer()),
        sa.Column("source", sa.String(10), server_default="auto"),
        *_timestamps(updated=False),
    )
    op.create_index("ix_time_entries_module", "time_entries", ["module"])
    op.create_index("ix_time_entries_client_id", "time_entries", ["client_id"])
    op.create_index("ix_time_entries_started_at", "time_entries", ["started_at"])
    op.create_index("ix_time_entries_ended_at", "time_entries", ["ended_at"])

    # ── Activity feed ────────────────────────────────────────

    op.create_table(
        "activity_entries",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("domain", sa.String(20), nullable=False),
        sa.Column("domain_ref_id", sa.String(36)),
        sa.Column("module", sa.String(50), nullable=False),
        sa.Column("activity_type", sa.String(50), nullable=False),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("ref_type", sa.String(50)),
        sa.Column("ref_id", sa.String(36)),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    for col in ("domain", "domain_ref_id", "module", "activity_type", "created_at"):
        op.create_index(f"ix_activity_entries_{col}", "activity_entries", [col])

    # ── Onboarding ───────────────────────────────────────────

    op.create_table(
        "onboarding_templates",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("steps", sa.JSON(), server_default="[]"),
        sa.Column("is_default", sa.Boolean(), server_default="false"),
        *_timestamps(),
    )
    op.create_index("ix_onboarding_templates_is_default", "onboarding_templates", ["is_default"])

    op.create_table(
        "onboarding_runs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "template_id", sa.String(36),
            sa.ForeignKey("onboarding_templates.id"), nullable=False,
        ),
        sa.Column("client_id", sa.String(36), sa.ForeignKey("clients.id"), nullable=False),
        sa.Column("status", sa.String(20), server_default="in_progress"),
        sa.Column("steps_completed", sa.JSON(), server_default="[]"),
        sa.Column("started_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("completed_at", sa.DateTime()),
    )
    op.create_index("ix_onboarding_runs_template_id", "onboarding_runs", ["template_id"])
    op.create_index("ix_onboarding_runs_client_id", "onboarding_runs", ["client_id"])


def downgrade() -> None:
    for table in (
        "onboarding_runs",
        "onboarding_templates",
        "activity_entries",
        "time_entries",
        "note_actions",
        "notes",
        "tasks",
        "project_phases",
        "projects",
        "product_modules",
        "products",
        "client_services",
        "clients",
    ):
        op.drop_table(table)
