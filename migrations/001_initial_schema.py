"""Migration 001: Initial schema bootstrap.

Creates the tables the trust and verification engine reads and writes.
Stations and users are owned by the surrounding application; only the
columns this service touches are declared here, so an existing database
can mark this migration as applied without running it:
    INSERT INTO _migrations (version, description, checksum)
    VALUES ('001', 'initial_schema', '<checksum>');
"""

version = "001"
description = "initial_schema"


def up(conn) -> None:
    """Create the stations, users, verification, report and trust event tables."""
    cur = conn.cursor()
    try:
        cur.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')

        # ------------------------------------------------------------------
        # Stations (admin status + live charger availability)
        # ------------------------------------------------------------------
        cur.execute("""
            CREATE TABLE IF NOT EXISTS stations (
                id SERIAL PRIMARY KEY,
                name TEXT NOT NULL,
                name_ar TEXT,
                city TEXT,
                status TEXT NOT NULL DEFAULT 'OPERATIONAL',
                charger_count INTEGER NOT NULL DEFAULT 1,
                available_chargers INTEGER NOT NULL DEFAULT 1,
                approval_status TEXT,
                is_hidden BOOLEAN NOT NULL DEFAULT FALSE,
                trust_level TEXT NOT NULL DEFAULT 'NORMAL',
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                CONSTRAINT stations_valid_status CHECK (status IN ('OPERATIONAL', 'MAINTENANCE', 'OFFLINE'))
            )
        """)

        # ------------------------------------------------------------------
        # Users (actor identity, role and reputation)
        # ------------------------------------------------------------------
        cur.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id VARCHAR PRIMARY KEY DEFAULT gen_random_uuid()::text,
                email VARCHAR,
                first_name VARCHAR,
                last_name VARCHAR,
                role VARCHAR NOT NULL DEFAULT 'user',
                trust_score INTEGER NOT NULL DEFAULT 0,
                user_trust_level VARCHAR NOT NULL DEFAULT 'NEW',
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                CONSTRAINT users_trust_score_non_negative CHECK (trust_score >= 0)
            )
        """)

        # ------------------------------------------------------------------
        # Community votes (append-only)
        # ------------------------------------------------------------------
        cur.execute("""
            CREATE TABLE IF NOT EXISTS station_verifications (
                id SERIAL PRIMARY KEY,
                station_id INTEGER NOT NULL REFERENCES stations(id) ON DELETE CASCADE,
                user_id VARCHAR NOT NULL,
                vote TEXT NOT NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                CONSTRAINT station_verifications_valid_vote CHECK (vote IN ('WORKING', 'NOT_WORKING', 'BUSY'))
            )
        """)
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_station_verifications_station_time "
            "ON station_verifications(station_id, created_at DESC)"
        )
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_station_verifications_user_time "
            "ON station_verifications(user_id, created_at DESC)"
        )

        # ------------------------------------------------------------------
        # Reports (moderated)
        # ------------------------------------------------------------------
        cur.execute("""
            CREATE TABLE IF NOT EXISTS reports (
                id SERIAL PRIMARY KEY,
                station_id INTEGER NOT NULL REFERENCES stations(id) ON DELETE CASCADE,
                user_id VARCHAR,
                status TEXT NOT NULL,
                reason TEXT,
                review_status TEXT NOT NULL DEFAULT 'open',
                reviewed_by VARCHAR,
                reviewed_at TIMESTAMPTZ,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                CONSTRAINT reports_valid_review_status CHECK (
                    review_status IN ('open', 'resolved', 'rejected', 'confirmed')
                )
            )
        """)
        cur.execute("CREATE INDEX IF NOT EXISTS idx_reports_station_time ON reports(station_id, created_at DESC)")
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_reports_station_reason ON reports(station_id, reason, created_at DESC)"
        )

        # ------------------------------------------------------------------
        # Trust events (append-only reputation ledger)
        # ------------------------------------------------------------------
        cur.execute("""
            CREATE TABLE IF NOT EXISTS trust_events (
                id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
                actor_id VARCHAR NOT NULL,
                event_type TEXT NOT NULL,
                station_id INTEGER,
                reason TEXT,
                delta INTEGER NOT NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                CONSTRAINT trust_events_valid_type CHECK (
                    event_type IN ('verification_reward', 'report_reward', 'contradiction_penalty')
                )
            )
        """)
        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_trust_events_key "
            "ON trust_events(actor_id, event_type, station_id, created_at DESC)"
        )

        # Append-only: reject UPDATE and DELETE at the database level too
        cur.execute("""
            CREATE OR REPLACE FUNCTION trust_events_immutable() RETURNS trigger AS $$
            BEGIN
                RAISE EXCEPTION 'trust_events rows are immutable';
            END;
            $$ LANGUAGE plpgsql
        """)
        cur.execute("DROP TRIGGER IF EXISTS trust_events_no_mutation ON trust_events")
        cur.execute("""
            CREATE TRIGGER trust_events_no_mutation
            BEFORE UPDATE OR DELETE ON trust_events
            FOR EACH ROW EXECUTE FUNCTION trust_events_immutable()
        """)
    finally:
        cur.close()


def down(conn) -> None:
    """Drop everything created by up()."""
    cur = conn.cursor()
    try:
        cur.execute("DROP TABLE IF EXISTS trust_events CASCADE")
        cur.execute("DROP FUNCTION IF EXISTS trust_events_immutable()")
        cur.execute("DROP TABLE IF EXISTS reports CASCADE")
        cur.execute("DROP TABLE IF EXISTS station_verifications CASCADE")
        cur.execute("DROP TABLE IF EXISTS users CASCADE")
        cur.execute("DROP TABLE IF EXISTS stations CASCADE")
    finally:
        cur.close()
