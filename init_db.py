# init_db.py
import logging

import psycopg

from config import DATABASE_URL

logger = logging.getLogger(__name__)

# Schema bootstrap. Every statement is idempotent (IF NOT EXISTS) so this can
# run on every start.
INIT_SQL = """
-- 1. Enum types for roles and lifecycle states
DO $$ BEGIN
    IF NOT EXISTS (SELECT 1 FROM pg_type WHERE typname = 'user_type') THEN
        CREATE TYPE user_type AS ENUM ('unset', 'worker', 'employer', 'admin');
    END IF;
    IF NOT EXISTS (SELECT 1 FROM pg_type WHERE typname = 'job_status') THEN
        CREATE TYPE job_status AS ENUM ('open', 'in_progress', 'completed_by_employer', 'completed', 'cancelled');
    END IF;
    IF NOT EXISTS (SELECT 1 FROM pg_type WHERE typname = 'application_status') THEN
        CREATE TYPE application_status AS ENUM ('pending', 'accepted', 'rejected');
    END IF;
END $$;

-- 2. users
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email VARCHAR(255) NOT NULL UNIQUE,
    hashed_password VARCHAR(255) NOT NULL,
    full_name VARCHAR(255),
    user_type user_type NOT NULL DEFAULT 'unset',
    rating REAL NOT NULL DEFAULT 0,
    xp INT NOT NULL DEFAULT 0,
    skills TEXT[] NOT NULL DEFAULT '{}',
    portfolio_images TEXT[] NOT NULL DEFAULT '{}',
    documents JSONB NOT NULL DEFAULT '[]'::jsonb,   -- [{name, url, type}]
    status VARCHAR(20) NOT NULL DEFAULT 'active',
    suspension_reason TEXT,
    banned_until TIMESTAMPTZ,
    phone VARCHAR(50),
    bio TEXT,
    city VARCHAR(100),
    company VARCHAR(255),
    avatar_url VARCHAR(1024),
    created_date TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- 3. jobs
CREATE TABLE IF NOT EXISTS jobs (
    id TEXT PRIMARY KEY,
    employer_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    worker_id TEXT REFERENCES users(id) ON DELETE SET NULL,
    title VARCHAR(255) NOT NULL,
    category VARCHAR(100) NOT NULL,
    description TEXT NOT NULL,
    location VARCHAR(255) NOT NULL,
    price NUMERIC(10, 2) NOT NULL,
    price_type VARCHAR(10) NOT NULL DEFAULT 'fixed' CHECK (price_type IN ('fixed', 'hourly')),
    status job_status NOT NULL DEFAULT 'open',
    urgency VARCHAR(10) NOT NULL DEFAULT 'medium' CHECK (urgency IN ('low', 'medium', 'high')),
    start_date DATE,
    end_date DATE,
    latitude DOUBLE PRECISION,
    longitude DOUBLE PRECISION,
    actual_start_date TIMESTAMPTZ,
    actual_end_date TIMESTAMPTZ,
    views INT NOT NULL DEFAULT 0,
    created_date TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- 4. applications: one per (job, worker)
CREATE TABLE IF NOT EXISTS applications (
    id TEXT PRIMARY KEY,
    job_id TEXT NOT NULL REFERENCES jobs(id) ON DELETE CASCADE,
    worker_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    message TEXT NOT NULL,
    application_type VARCHAR(20) NOT NULL CHECK (application_type IN ('application', 'proposal')),
    proposed_price NUMERIC(10, 2),
    status application_status NOT NULL DEFAULT 'pending',
    created_date TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (job_id, worker_id),
    CHECK ((application_type = 'proposal') = (proposed_price IS NOT NULL))
);

-- 5. chat_messages
CREATE TABLE IF NOT EXISTS chat_messages (
    id TEXT PRIMARY KEY,
    conversation_id VARCHAR(255) NOT NULL,
    sender_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    receiver_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    message TEXT NOT NULL DEFAULT '',
    attachment_url VARCHAR(1024),
    attachment_type VARCHAR(20) CHECK (attachment_type IN ('image', 'document')),
    is_read BOOLEAN NOT NULL DEFAULT FALSE,
    created_date TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- 6. notifications
CREATE TABLE IF NOT EXISTS notifications (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    type VARCHAR(40) NOT NULL,
    title VARCHAR(255) NOT NULL,
    message TEXT NOT NULL,
    related_id TEXT,
    action_url VARCHAR(255),
    is_read BOOLEAN NOT NULL DEFAULT FALSE,
    created_date TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- 7. ratings: one per (job, rater, rated)
CREATE TABLE IF NOT EXISTS ratings (
    id TEXT PRIMARY KEY,
    job_id TEXT NOT NULL REFERENCES jobs(id) ON DELETE CASCADE,
    rater_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    rated_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    rating INT NOT NULL CHECK (rating BETWEEN 1 AND 5),
    comment TEXT NOT NULL,
    qualities TEXT[] NOT NULL DEFAULT '{}',
    created_date TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    UNIQUE (job_id, rater_id, rated_id)
);

-- 8. blacklist (admin penalties)
CREATE TABLE IF NOT EXISTS blacklist (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    admin_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    reason TEXT NOT NULL,
    severity VARCHAR(20) NOT NULL CHECK (severity IN ('warning', 'suspension', 'ban')),
    expires_at TIMESTAMPTZ,
    created_date TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- Indexes for the hot filters
CREATE INDEX IF NOT EXISTS idx_jobs_employer ON jobs(employer_id);
CREATE INDEX IF NOT EXISTS idx_jobs_worker ON jobs(worker_id);
CREATE INDEX IF NOT EXISTS idx_jobs_status ON jobs(status);
CREATE INDEX IF NOT EXISTS idx_applications_worker ON applications(worker_id);
CREATE INDEX IF NOT EXISTS idx_chat_conversation ON chat_messages(conversation_id);
CREATE INDEX IF NOT EXISTS idx_chat_receiver_unread ON chat_messages(receiver_id) WHERE NOT is_read;
CREATE INDEX IF NOT EXISTS idx_notifications_user ON notifications(user_id);
CREATE INDEX IF NOT EXISTS idx_ratings_rated ON ratings(rated_id);
"""

# Columns added after the first release: (table, column, DDL type)
# Older databases get them on the next start.
LATE_COLUMNS = [
    ("users", "suspension_reason", "TEXT"),
    ("users", "banned_until", "TIMESTAMPTZ"),
    ("users", "avatar_url", "VARCHAR(1024)"),
    ("users", "company", "VARCHAR(255)"),
    ("jobs", "urgency", "VARCHAR(10) NOT NULL DEFAULT 'medium'"),
    ("jobs", "views", "INT NOT NULL DEFAULT 0"),
    ("jobs", "latitude", "DOUBLE PRECISION"),
    ("jobs", "longitude", "DOUBLE PRECISION"),
]


def init_database():
    """
    Bootstrap the schema:
    1. Create enum types, tables and indexes.
    2. Add any late columns missing from an older database.

    Uses a synchronous connection since it runs once before serving.
    """
    try:
        logger.info("Checking database schema...")
        with psycopg.connect(DATABASE_URL) as conn:
            with conn.cursor() as cur:
                cur.execute(INIT_SQL)

                for table, column, ddl in LATE_COLUMNS:
                    cur.execute(
                        "SELECT column_name FROM information_schema.columns WHERE table_name = %s AND column_name = %s",
                        (table, column),
                    )
                    if not cur.fetchone():
                        logger.info("--> %s is missing %s, adding it", table, column)
                        cur.execute(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}")

            conn.commit()
            logger.info("Database schema ready")
    except Exception as e:
        logger.error("Database initialization failed: %s", e)
        raise


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_database()
