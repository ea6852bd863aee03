"""001 – Initial schema: organization, check-ins, leave, absences, summaries.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-03-02 09:00:00.000000+08:00
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
    (
        "user_role",
        ["worker", "member", "team_lead", "supervisor", "executive", "admin"],
    ),
    ("readiness_status", ["green", "yellow", "red"]),
    (
        "exception_type",
        [
            "sick_leave",
            "personal_leave",
            "medical_appointment",
            "family_emergency",
            "other",
        ],
    ),
    ("exception_status", ["pending", "approved", "rejected"]),
    ("absence_status", ["pending_justification", "excused", "unexcused"]),
    (
        "absence_reason",
        ["sick", "emergency", "personal", "forgot_checkin", "technical_issue", "other"],
    ),
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
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. companies ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE companies (
            id                      UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            name                    VARCHAR(200) NOT NULL,
            timezone                VARCHAR(64)  NOT NULL DEFAULT 'Asia/Manila',
            leave_return_grace_days INTEGER,
            is_active               BOOLEAN DEFAULT TRUE,
            created_at              TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 2. teams ──────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE teams (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            company_id  UUID NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
            name        VARCHAR(200) NOT NULL,
            work_days   VARCHAR(50)  NOT NULL DEFAULT 'MON,TUE,WED,THU,FRI',
            shift_start TIME NOT NULL DEFAULT '08:00',
            shift_end   TIME NOT NULL DEFAULT '17:00',
            leader_id   UUID,  -- FK added after users table
            is_active   BOOLEAN DEFAULT TRUE,
            created_at  TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_teams_company_id ON teams(company_id)")

    # ── 3. users ──────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE users (
            id                UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            company_id        UUID NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
            team_id           UUID REFERENCES teams(id) ON DELETE SET NULL,
            email             VARCHAR(255) UNIQUE,
            first_name        VARCHAR(100) NOT NULL,
            last_name         VARCHAR(100) NOT NULL,
            role              user_role NOT NULL DEFAULT 'worker',
            is_active         BOOLEAN DEFAULT TRUE,
            team_joined_at    TIMESTAMPTZ,
            total_checkins    INTEGER DEFAULT 0,
            current_streak    INTEGER DEFAULT 0,
            longest_streak    INTEGER DEFAULT 0,
            last_checkin_date DATE,
            created_at        TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_users_team_id ON users(team_id)")
    op.execute("CREATE INDEX ix_users_company_id ON users(company_id)")

    op.execute("""
        ALTER TABLE teams
            ADD CONSTRAINT fk_teams_leader
            FOREIGN KEY (leader_id) REFERENCES users(id) ON DELETE SET NULL
    """)

    # ── 4. holidays ───────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE holidays (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            company_id  UUID NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
            date        DATE NOT NULL,
            name        VARCHAR(200) NOT NULL,
            created_by  UUID,
            created_at  TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_holidays_company_date UNIQUE (company_id, date)
        )
    """)

    # ── 5. checkins ───────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE checkins (
            id               UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id          UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            company_id       UUID NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
            mood             SMALLINT NOT NULL CHECK (mood BETWEEN 1 AND 10),
            stress           SMALLINT NOT NULL CHECK (stress BETWEEN 1 AND 10),
            sleep            SMALLINT NOT NULL CHECK (sleep BETWEEN 1 AND 10),
            physical_health  SMALLINT NOT NULL CHECK (physical_health BETWEEN 1 AND 10),
            readiness_score  INTEGER NOT NULL,
            readiness_status readiness_status NOT NULL,
            notes            TEXT,
            checkin_date     DATE NOT NULL,
            created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_checkins_user_date UNIQUE (user_id, checkin_date)
        )
    """)
    op.execute("CREATE INDEX ix_checkins_user_created ON checkins(user_id, created_at)")
    op.execute("CREATE INDEX ix_checkins_company_created ON checkins(company_id, created_at)")

    # ── 6. exceptions (leave) ─────────────────────────────────────────────
    op.execute("""
        CREATE TABLE exceptions (
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id      UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            company_id   UUID NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
            type         exception_type NOT NULL DEFAULT 'personal_leave',
            status       exception_status NOT NULL DEFAULT 'pending',
            start_date   DATE NOT NULL,
            end_date     DATE NOT NULL,
            reason       TEXT,
            reviewed_by  UUID,
            reviewed_at  TIMESTAMPTZ,
            review_notes TEXT,
            created_at   TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_exceptions_range CHECK (end_date >= start_date)
        )
    """)
    op.execute("CREATE INDEX ix_exceptions_user_status ON exceptions(user_id, status)")
    op.execute("CREATE INDEX ix_exceptions_dates ON exceptions(start_date, end_date)")

    # ── 7. absences ───────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE absences (
            id              UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            user_id         UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            team_id         UUID NOT NULL REFERENCES teams(id) ON DELETE CASCADE,
            company_id      UUID NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
            absence_date    DATE NOT NULL,
            status          absence_status NOT NULL DEFAULT 'pending_justification',
            reason_category absence_reason,
            explanation     TEXT,
            justified_at    TIMESTAMPTZ,
            reviewed_by     UUID REFERENCES users(id) ON DELETE SET NULL,
            reviewed_at     TIMESTAMPTZ,
            review_notes    TEXT,
            created_at      TIMESTAMPTZ DEFAULT NOW(),
            updated_at      TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_absences_user_date UNIQUE (user_id, absence_date)
        )
    """)
    op.execute("CREATE INDEX ix_absences_team_status ON absences(team_id, status)")
    op.execute("CREATE INDEX ix_absences_date ON absences(absence_date)")

    # ── 8. daily_team_summaries ───────────────────────────────────────────
    op.execute("""
        CREATE TABLE daily_team_summaries (
            id                   UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            team_id              UUID NOT NULL REFERENCES teams(id) ON DELETE CASCADE,
            company_id           UUID NOT NULL REFERENCES companies(id) ON DELETE CASCADE,
            date                 DATE NOT NULL,
            is_work_day          BOOLEAN NOT NULL,
            is_holiday           BOOLEAN NOT NULL,
            total_members        INTEGER NOT NULL DEFAULT 0,
            on_leave_count       INTEGER NOT NULL DEFAULT 0,
            excused_count        INTEGER NOT NULL DEFAULT 0,
            absent_count         INTEGER NOT NULL DEFAULT 0,
            expected_to_check_in INTEGER NOT NULL DEFAULT 0,
            checked_in_count     INTEGER NOT NULL DEFAULT 0,
            not_checked_in_count INTEGER NOT NULL DEFAULT 0,
            green_count          INTEGER NOT NULL DEFAULT 0,
            yellow_count         INTEGER NOT NULL DEFAULT 0,
            red_count            INTEGER NOT NULL DEFAULT 0,
            avg_readiness_score  DOUBLE PRECISION,
            compliance_rate      DOUBLE PRECISION CHECK (compliance_rate BETWEEN 0 AND 100),
            created_at           TIMESTAMPTZ DEFAULT NOW(),
            updated_at           TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_daily_team_summaries_team_date UNIQUE (team_id, date)
        )
    """)
    op.execute(
        "CREATE INDEX ix_daily_team_summaries_company_date "
        "ON daily_team_summaries(company_id, date)"
    )

    # ── 9. audit_trail ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_trail (
            id          UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            actor_id    UUID,
            action      VARCHAR(50) NOT NULL,
            entity_type VARCHAR(50) NOT NULL,
            entity_id   UUID NOT NULL,
            old_values  JSONB,
            new_values  JSONB,
            created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_audit_trail_entity ON audit_trail(entity_type, entity_id)")
    op.execute("CREATE INDEX ix_audit_trail_created_at ON audit_trail(created_at)")


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Drop tables in reverse dependency order
    tables = [
        "audit_trail",
        "daily_team_summaries",
        "absences",
        "exceptions",
        "checkins",
        "holidays",
    ]
    for t in tables:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    # Drop deferred FK before dropping users / teams
    op.execute("ALTER TABLE teams DROP CONSTRAINT IF EXISTS fk_teams_leader")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
    op.execute("DROP TABLE IF EXISTS teams CASCADE")
    op.execute("DROP TABLE IF EXISTS companies CASCADE")

    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)

    op.execute('DROP EXTENSION IF EXISTS "uuid-ossp"')
