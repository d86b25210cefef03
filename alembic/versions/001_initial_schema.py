"""001 – Initial schema: users, schools, employees, postings, leave, invoices, payments, ledger.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 10:00:00.000000+05:30
"""

from alembic import op

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENUM_TYPES: list[tuple[str, list[str]]] = [
    ("user_role", ["admin", "hr", "accounts"]),
    ("school_status", ["active", "inactive"]),
    ("employment_status", ["active", "inactive"]),
    ("posting_status", ["continue", "resign", "terminate", "change_school"]),
    ("leave_type", ["paid", "unpaid", "sick", "casual", "emergency"]),
    ("leave_status", ["pending", "approved", "rejected", "cancelled"]),
    (
        "invoice_status",
        ["draft", "verified", "sent", "paid", "overdue", "cancelled"],
    ),
    ("payment_method", ["cash", "cheque", "bank_transfer", "online", "dd"]),
    ("payment_status", ["pending", "cleared", "failed", "refunded"]),
    ("ledger_entry_type", ["invoice_generated", "payment_received", "credit_note"]),
]


def _create_enum(name: str, values: list[str]) -> None:
    vals = ", ".join(f"'{v}'" for v in values)
    op.execute(f"CREATE TYPE {name} AS ENUM ({vals})")


def _drop_enum(name: str) -> None:
    op.execute(f"DROP TYPE IF EXISTS {name}")


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # ── Extensions ────────────────────────────────────────────────────────
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')
    op.execute('CREATE EXTENSION IF NOT EXISTS "pg_trgm"')

    # ── Enum types ────────────────────────────────────────────────────────
    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. users ──────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE users (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name        VARCHAR(150) NOT NULL,
            email       VARCHAR(255) NOT NULL UNIQUE,
            role        user_role NOT NULL DEFAULT 'hr',
            is_active   BOOLEAN DEFAULT TRUE,
            created_at  TIMESTAMPTZ DEFAULT NOW(),
            updated_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 2. user_sessions ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE user_sessions (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id     UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            token_hash  VARCHAR(512) NOT NULL,
            ip_address  INET,
            user_agent  TEXT,
            expires_at  TIMESTAMPTZ NOT NULL,
            is_revoked  BOOLEAN DEFAULT FALSE,
            created_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX idx_user_sessions_token ON user_sessions(token_hash)")

    # ── 3. schools ────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE schools (
            id                  UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name                VARCHAR(200) NOT NULL,
            code                VARCHAR(20)  NOT NULL UNIQUE,
            city                VARCHAR(100),
            address             TEXT,
            contact_person_name VARCHAR(150),
            mobile              VARCHAR(20),
            email               VARCHAR(255),
            trainers_required   INTEGER NOT NULL DEFAULT 1,
            status              school_status NOT NULL DEFAULT 'active',
            created_by          UUID REFERENCES users(id),
            updated_by          UUID REFERENCES users(id),
            created_at          TIMESTAMPTZ DEFAULT NOW(),
            updated_at          TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_schools_trainers_required CHECK (trainers_required >= 1)
        )
    """)
    op.execute(
        "CREATE INDEX idx_schools_name_trgm ON schools USING gin (name gin_trgm_ops)"
    )

    # ── 4. employees ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE employees (
            id                UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_code     VARCHAR(20)  NOT NULL UNIQUE,
            full_name         VARCHAR(200) NOT NULL,
            email             VARCHAR(255) NOT NULL UNIQUE,
            phone             VARCHAR(20),
            designation       VARCHAR(150),
            department        VARCHAR(150),
            date_of_joining   DATE NOT NULL,
            date_of_exit      DATE,
            employment_status employment_status NOT NULL DEFAULT 'active',
            address           TEXT,
            is_active         BOOLEAN DEFAULT TRUE,
            created_by        UUID REFERENCES users(id),
            updated_by        UUID REFERENCES users(id),
            created_at        TIMESTAMPTZ DEFAULT NOW(),
            updated_at        TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute(
        "CREATE INDEX idx_employees_name_trgm ON employees USING gin (full_name gin_trgm_ops)"
    )

    # ── 5. school_trainers (current trainer set) ──────────────────────────
    op.execute("""
        CREATE TABLE school_trainers (
            school_id    UUID NOT NULL REFERENCES schools(id) ON DELETE CASCADE,
            employee_id  UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            added_at     TIMESTAMPTZ DEFAULT NOW(),
            PRIMARY KEY (school_id, employee_id)
        )
    """)
    op.execute(
        "CREATE INDEX ix_school_trainers_employee_id ON school_trainers(employee_id)"
    )

    # ── 6. employee_postings ──────────────────────────────────────────────
    op.execute("""
        CREATE TABLE employee_postings (
            id                     UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id            UUID NOT NULL REFERENCES employees(id),
            school_id              UUID NOT NULL REFERENCES schools(id),
            monthly_billing_salary NUMERIC(12,2) NOT NULL,
            tds_percent            NUMERIC(5,2) DEFAULT 0,
            gst_percent            NUMERIC(5,2) DEFAULT 0,
            start_date             DATE NOT NULL DEFAULT CURRENT_DATE,
            end_date               DATE,
            status                 posting_status NOT NULL DEFAULT 'continue',
            remark                 TEXT,
            is_active              BOOLEAN NOT NULL DEFAULT FALSE,
            created_by             UUID REFERENCES users(id),
            updated_by             UUID REFERENCES users(id),
            created_at             TIMESTAMPTZ DEFAULT NOW(),
            updated_at             TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_employee_postings_billing_non_negative
                CHECK (monthly_billing_salary >= 0),
            CONSTRAINT ck_employee_postings_tds_range
                CHECK (tds_percent >= 0 AND tds_percent <= 100),
            CONSTRAINT ck_employee_postings_gst_range
                CHECK (gst_percent >= 0 AND gst_percent <= 100)
        )
    """)
    # At most one active posting per employee
    op.execute("""
        CREATE UNIQUE INDEX uq_posting_employee_active
            ON employee_postings(employee_id) WHERE is_active
    """)
    op.execute(
        "CREATE INDEX ix_employee_postings_school_active "
        "ON employee_postings(school_id, is_active)"
    )
    op.execute("CREATE INDEX ix_employee_postings_status ON employee_postings(status)")

    # ── 7. leaves ─────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leaves (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            employee_id      UUID NOT NULL REFERENCES employees(id),
            school_id        UUID NOT NULL REFERENCES schools(id),
            posting_id       UUID NOT NULL REFERENCES employee_postings(id),
            leave_type       leave_type NOT NULL,
            start_date       DATE NOT NULL,
            end_date         DATE NOT NULL,
            number_of_days   INTEGER NOT NULL,
            reason           TEXT,
            is_deductible    BOOLEAN NOT NULL DEFAULT FALSE,
            status           leave_status NOT NULL DEFAULT 'pending',
            reviewed_by      UUID REFERENCES users(id),
            reviewed_at      TIMESTAMPTZ,
            reviewer_remarks TEXT,
            cancelled_at     TIMESTAMPTZ,
            created_by       UUID REFERENCES users(id),
            created_at       TIMESTAMPTZ DEFAULT NOW(),
            updated_at       TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_leaves_date_order CHECK (start_date <= end_date)
        )
    """)
    op.execute("CREATE INDEX ix_leaves_employee_start ON leaves(employee_id, start_date)")
    op.execute("CREATE INDEX ix_leaves_school_start ON leaves(school_id, start_date)")
    op.execute("CREATE INDEX ix_leaves_posting_id ON leaves(posting_id)")

    # ── 8. invoices ───────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE invoices (
            id              UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            invoice_number  VARCHAR(30) NOT NULL UNIQUE,
            school_id       UUID NOT NULL REFERENCES schools(id),
            school_name     VARCHAR(200) NOT NULL,
            month           SMALLINT NOT NULL,
            year            SMALLINT NOT NULL,
            subtotal        NUMERIC(14,2) NOT NULL DEFAULT 0,
            previous_due    NUMERIC(14,2) NOT NULL DEFAULT 0,
            total_payable   NUMERIC(14,2) NOT NULL,
            paid_amount     NUMERIC(14,2) NOT NULL DEFAULT 0,
            balance_due     NUMERIC(14,2) NOT NULL,
            status          invoice_status NOT NULL DEFAULT 'draft',
            invoice_date    DATE NOT NULL DEFAULT CURRENT_DATE,
            due_date        DATE NOT NULL,
            sent_date       DATE,
            paid_date       DATE,
            verified_by     UUID REFERENCES users(id),
            verified_at     TIMESTAMPTZ,
            notes           TEXT,
            terms           TEXT,
            is_locked       BOOLEAN NOT NULL DEFAULT FALSE,
            created_by      UUID REFERENCES users(id),
            updated_by      UUID REFERENCES users(id),
            created_at      TIMESTAMPTZ DEFAULT NOW(),
            updated_at      TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_invoices_month CHECK (month BETWEEN 1 AND 12),
            CONSTRAINT ck_invoices_balance_non_negative CHECK (balance_due >= 0)
        )
    """)
    # One live invoice per school per month
    op.execute("""
        CREATE UNIQUE INDEX uq_invoice_school_month_live
            ON invoices(school_id, month, year) WHERE status <> 'cancelled'
    """)
    op.execute("CREATE INDEX ix_invoices_status ON invoices(status)")
    op.execute("CREATE INDEX ix_invoices_due_date ON invoices(due_date)")

    # ── 9. invoice_items ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE invoice_items (
            id                UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            invoice_id        UUID NOT NULL REFERENCES invoices(id) ON DELETE CASCADE,
            posting_id        UUID NOT NULL REFERENCES employee_postings(id),
            employee_id       UUID NOT NULL REFERENCES employees(id),
            employee_name     VARCHAR(200) NOT NULL,
            designation       VARCHAR(150),
            monthly_rate      NUMERIC(12,2) NOT NULL,
            deployed_days     SMALLINT NOT NULL,
            unpaid_leave_days SMALLINT NOT NULL DEFAULT 0,
            billable_days     SMALLINT NOT NULL,
            per_day_rate      NUMERIC(12,2) NOT NULL,
            amount            NUMERIC(14,2) NOT NULL,
            join_date         DATE,
            leave_date        DATE,
            CONSTRAINT ck_invoice_items_deployed CHECK (deployed_days BETWEEN 0 AND 31)
        )
    """)
    op.execute("CREATE INDEX ix_invoice_items_invoice_id ON invoice_items(invoice_id)")
    op.execute("CREATE INDEX ix_invoice_items_employee_id ON invoice_items(employee_id)")

    # ── 10. payments ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE payments (
            id                UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            payment_number    VARCHAR(30) NOT NULL UNIQUE,
            invoice_id        UUID NOT NULL REFERENCES invoices(id),
            school_id         UUID NOT NULL REFERENCES schools(id),
            amount            NUMERIC(14,2) NOT NULL,
            payment_date      DATE NOT NULL DEFAULT CURRENT_DATE,
            payment_method    payment_method NOT NULL,
            reference_number  VARCHAR(100),
            bank_name         VARCHAR(150),
            remarks           TEXT,
            remaining_balance NUMERIC(14,2) NOT NULL,
            status            payment_status NOT NULL DEFAULT 'pending',
            received_by       UUID REFERENCES users(id),
            verified_by       UUID REFERENCES users(id),
            verified_at       TIMESTAMPTZ,
            created_at        TIMESTAMPTZ DEFAULT NOW(),
            updated_at        TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_payments_amount_positive CHECK (amount > 0)
        )
    """)
    op.execute("CREATE INDEX ix_payments_invoice_id ON payments(invoice_id)")
    op.execute("CREATE INDEX ix_payments_school_date ON payments(school_id, payment_date)")

    # ── 11. school_ledger ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE school_ledger (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            school_id        UUID NOT NULL REFERENCES schools(id),
            invoice_id       UUID REFERENCES invoices(id),
            payment_id       UUID REFERENCES payments(id),
            entry_type       ledger_entry_type NOT NULL,
            debit            NUMERIC(14,2) NOT NULL DEFAULT 0,
            credit           NUMERIC(14,2) NOT NULL DEFAULT 0,
            balance          NUMERIC(14,2) NOT NULL,
            entry_date       DATE NOT NULL DEFAULT CURRENT_DATE,
            month            SMALLINT NOT NULL,
            year             SMALLINT NOT NULL,
            reference_number VARCHAR(100),
            description      TEXT,
            created_by       UUID REFERENCES users(id),
            created_at       TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_school_ledger_amounts_non_negative CHECK (debit >= 0 AND credit >= 0)
        )
    """)
    op.execute("CREATE INDEX ix_school_ledger_school_date ON school_ledger(school_id, entry_date)")
    op.execute("CREATE INDEX ix_school_ledger_invoice_id ON school_ledger(invoice_id)")

    # ── 12. audit_trail ───────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_trail (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            actor_id    UUID REFERENCES users(id),
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
    op.execute("CREATE INDEX ix_audit_trail_actor_id ON audit_trail(actor_id)")
    op.execute("CREATE INDEX ix_audit_trail_entity ON audit_trail(entity_type, entity_id)")
    op.execute("CREATE INDEX ix_audit_trail_created_at ON audit_trail(created_at)")
    op.execute("CREATE INDEX ix_audit_trail_action ON audit_trail(action)")


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Drop tables in reverse dependency order
    tables = [
        "audit_trail",
        "school_ledger",
        "payments",
        "invoice_items",
        "invoices",
        "leaves",
        "employee_postings",
        "school_trainers",
        "employees",
        "schools",
        "user_sessions",
        "users",
    ]
    for t in tables:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)
