"""001 – Attendance schema: departments, employees, attendance_entries, audit_trail.

Revision ID: 001_attendance_entries
Revises:
Create Date: 2026-10-17 10:00:00.000000+05:30
"""

from alembic import op

# Revision identifiers
revision = "001_attendance_entries"
down_revision = None
branch_labels = None
depends_on = None


ENTRY_STATUSES = ["IN_PROGRESS", "COMPLETED", "AUTO_EXPIRED", "EDITED", "MANUAL"]


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # ── Extensions ────────────────────────────────────────────────────────
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # ── 1. departments ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE departments (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name        VARCHAR(150) NOT NULL UNIQUE,
            code        VARCHAR(20) UNIQUE,
            is_active   BOOLEAN DEFAULT TRUE,
            created_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 2. employees ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE employees (
            id             UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_code  VARCHAR(20) NOT NULL UNIQUE,
            first_name     VARCHAR(100) NOT NULL,
            last_name      VARCHAR(100) NOT NULL,
            display_name   VARCHAR(255),
            email          VARCHAR(255) NOT NULL UNIQUE,
            department_id  UUID REFERENCES departments(id),
            is_active      BOOLEAN DEFAULT TRUE,
            created_at     TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX idx_employees_department ON employees(department_id)")

    # ── 3. attendance_entries ─────────────────────────────────────────────
    statuses = ", ".join(f"'{s}'" for s in ENTRY_STATUSES)
    op.execute(f"""
        CREATE TABLE attendance_entries (
            id                   UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id          UUID NOT NULL REFERENCES employees(id),
            date                 DATE NOT NULL,
            clock_in             TIMESTAMPTZ NOT NULL,
            clock_out            TIMESTAMPTZ,
            work_summary         TEXT,
            status               VARCHAR(20) NOT NULL DEFAULT 'IN_PROGRESS'
                                 CHECK (status IN ({statuses})),
            is_flagged           BOOLEAN NOT NULL DEFAULT FALSE,
            flag_reason          TEXT,
            flagged_by           UUID REFERENCES employees(id),
            flagged_at           TIMESTAMPTZ,
            edit_reason          TEXT,
            edited_by            UUID REFERENCES employees(id),
            edited_at            TIMESTAMPTZ,
            is_manual_entry      BOOLEAN NOT NULL DEFAULT FALSE,
            manual_entry_reason  TEXT,
            created_by           UUID REFERENCES employees(id),
            device_info          VARCHAR(255),
            note                 TEXT,
            ip_address           INET,
            created_at           TIMESTAMPTZ DEFAULT NOW(),
            updated_at           TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_attendance_entries_range
                CHECK (clock_out IS NULL OR clock_out > clock_in)
        )
    """)
    op.execute("""
        CREATE INDEX ix_attendance_entries_employee_date
            ON attendance_entries(employee_id, date)
    """)
    op.execute("CREATE INDEX ix_attendance_entries_status   ON attendance_entries(status)")
    op.execute("CREATE INDEX ix_attendance_entries_clock_in ON attendance_entries(clock_in)")
    # At most one open session per employee
    op.execute("""
        CREATE UNIQUE INDEX uq_attendance_entries_open_session
            ON attendance_entries(employee_id)
            WHERE status = 'IN_PROGRESS'
    """)

    # ── 4. audit_trail ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_trail (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            actor_id    UUID REFERENCES employees(id),
            action      VARCHAR(50) NOT NULL,
            entity_type VARCHAR(50) NOT NULL,
            entity_id   UUID NOT NULL,
            old_values  JSONB,
            new_values  JSONB,
            ip_address  INET,
            user_agent  TEXT,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX ix_audit_trail_entity
            ON audit_trail(entity_type, entity_id)
    """)
    op.execute("CREATE INDEX ix_audit_trail_actor_id   ON audit_trail(actor_id)")
    op.execute("CREATE INDEX ix_audit_trail_created_at ON audit_trail(created_at)")
    op.execute("CREATE INDEX ix_audit_trail_action     ON audit_trail(action)")


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Drop tables in reverse dependency order
    for table in ["audit_trail", "attendance_entries", "employees", "departments"]:
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")
