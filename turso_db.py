"""
Turso database connection and operations for the coverage roster.
"""

import json
import logging
import uuid

import libsql_experimental as libsql
import streamlit as st

from models import Centroid, TechnicianRecord
from utils import strip_phone

# Configure logging
logger = logging.getLogger(__name__)

# SQLite has a max of 999 parameters per query
MAX_LOOKUP_BATCH = 900

TECHNICIAN_COLUMNS = (
    "id, name, phone, email, specialty, city, state, zip, latitude, longitude, "
    "service_radius_miles, priority, notes, is_active, is_new, created_by, created_at"
)


def _row_to_technician(r: tuple) -> TechnicianRecord:
    """Map a technicians row (TECHNICIAN_COLUMNS order) to a record."""
    return TechnicianRecord(
        id=r[0],
        name=r[1],
        phone=r[2],
        email=r[3],
        specialty=json.loads(r[4]) if r[4] else [],
        city=r[5],
        state=r[6],
        zip=r[7],
        latitude=r[8],
        longitude=r[9],
        service_radius_miles=r[10],
        priority=r[11] or "normal",
        notes=r[12],
        is_active=bool(r[13]),
        is_new=bool(r[14]),
        created_by=r[15],
        created_at=r[16],
    )


def _phone_key(phone: str | None) -> str | None:
    """Uniqueness key for a phone: its 10 digits, or None when it has no 10-digit form."""
    digits = strip_phone(phone or "")
    return digits if len(digits) == 10 else None


def _technician_params(record: TechnicianRecord) -> tuple:
    """Insert parameters for a record, in INSERT column order."""
    return (
        record.id,
        record.name,
        record.phone or None,
        _phone_key(record.phone),
        record.email or None,
        json.dumps(record.specialty or []),
        record.city,
        record.state,
        record.zip,
        record.latitude,
        record.longitude,
        record.service_radius_miles,
        record.priority,
        record.notes or None,
        1 if record.is_active else 0,
        1 if record.is_new else 0,
        record.created_by,
    )


class TursoDatabase:
    """Turso database connection manager."""

    def __init__(self, url: str, auth_token: str):
        self.url = url
        self.auth_token = auth_token
        self._conn = None

    @property
    def connection(self):
        """Get or create database connection."""
        if self._conn is None:
            self._conn = libsql.connect(self.url, auth_token=self.auth_token)
        return self._conn

    def _reconnect(self):
        """Force a new connection (e.g. after a stale Hrana stream)."""
        self._conn = None
        return self.connection

    def dedicated(self) -> "TursoDatabase":
        """A new manager for the same database that opens its own connection.

        Use for work that holds a transaction open across many statements, so
        the shared cached connection is never left mid-transaction.
        """
        return TursoDatabase(self.url, self.auth_token)

    def close(self) -> None:
        """Close the connection if one is open."""
        if self._conn is not None:
            try:
                self._conn.close()
            except Exception as e:
                logger.debug(f"Close failed (connection likely gone): {e}")
            self._conn = None

    def _is_stale_stream_error(self, exc: Exception) -> bool:
        """Check if an exception is a stale Hrana stream error."""
        msg = str(exc).lower()
        return "stream not found" in msg or ("hrana" in msg and "404" in msg)

    def execute(self, query: str, params: tuple = ()) -> list:
        """Execute query and return results. Reconnects on stale stream."""
        try:
            cursor = self.connection.execute(query, params)
            return cursor.fetchall()
        except Exception as e:
            if self._is_stale_stream_error(e):
                logger.warning("Stale Hrana stream detected, reconnecting...")
                cursor = self._reconnect().execute(query, params)
                return cursor.fetchall()
            raise

    def execute_write(self, query: str, params: tuple = ()) -> int:
        """Execute insert/update/delete and return lastrowid. Reconnects on stale stream."""
        try:
            cursor = self.connection.execute(query, params)
            self.connection.commit()
            return cursor.lastrowid
        except Exception as e:
            if self._is_stale_stream_error(e):
                logger.warning("Stale Hrana stream detected, reconnecting...")
                conn = self._reconnect()
                cursor = conn.execute(query, params)
                conn.commit()
                return cursor.lastrowid
            self.rollback()
            raise

    def execute_many(self, query: str, params_list: list[tuple], commit: bool = True) -> None:
        """Execute batch insert/update. Reconnects on stale stream.

        With commit=False the statements join the open transaction and the
        caller owns commit()/rollback(). On failure nothing from this call is
        kept: a committing call rolls back before re-raising.
        """
        try:
            for params in params_list:
                self.connection.execute(query, params)
            if commit:
                self.connection.commit()
        except Exception as e:
            if commit and self._is_stale_stream_error(e):
                logger.warning("Stale Hrana stream detected, reconnecting...")
                # Safe to replay: the dead stream never committed
                conn = self._reconnect()
                for params in params_list:
                    conn.execute(query, params)
                conn.commit()
                return
            if commit:
                self.rollback()
            raise

    def commit(self) -> None:
        """Commit the open transaction."""
        self.connection.commit()

    def rollback(self) -> None:
        """Roll back the open transaction. Best-effort on a dead connection."""
        try:
            self.connection.rollback()
        except Exception as e:
            logger.debug(f"Rollback failed (connection likely closed): {e}")

    def init_schema(self) -> None:
        """Initialize database schema."""
        schema_statements = [
            # Technician roster
            """
            CREATE TABLE IF NOT EXISTS technicians (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                phone TEXT,
                phone_digits TEXT,
                email TEXT,
                specialty TEXT,
                city TEXT NOT NULL,
                state TEXT NOT NULL,
                zip TEXT NOT NULL,
                latitude REAL NOT NULL,
                longitude REAL NOT NULL,
                service_radius_miles INTEGER NOT NULL DEFAULT 25,
                priority TEXT NOT NULL DEFAULT 'normal',
                notes TEXT,
                is_active INTEGER NOT NULL DEFAULT 1,
                is_new INTEGER NOT NULL DEFAULT 0,
                created_by TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP
            )
            """,
            "CREATE INDEX IF NOT EXISTS idx_technicians_zip ON technicians(zip)",
            "CREATE INDEX IF NOT EXISTS idx_technicians_state ON technicians(state)",
            # ZIP centroid cache (seeded or live-geocoded)
            """
            CREATE TABLE IF NOT EXISTS zip_centroids (
                zip TEXT PRIMARY KEY,
                latitude REAL NOT NULL,
                longitude REAL NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """,
            # City centroid cache (seeded)
            """
            CREATE TABLE IF NOT EXISTS city_centroids (
                city TEXT NOT NULL,
                state TEXT NOT NULL,
                latitude REAL NOT NULL,
                longitude REAL NOT NULL,
                zip TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (city, state)
            )
            """,
            "CREATE INDEX IF NOT EXISTS idx_city_centroids_state ON city_centroids(state)",
        ]

        for statement in schema_statements:
            self.connection.execute(statement)
        self.connection.commit()

        # Migrations for existing tables (add columns if they don't exist)
        self._run_migrations()

    def _run_migrations(self) -> None:
        """Run schema migrations for existing tables."""
        migrations = [
            ("technicians", "priority", "ALTER TABLE technicians ADD COLUMN priority TEXT NOT NULL DEFAULT 'normal'"),
            ("technicians", "is_new", "ALTER TABLE technicians ADD COLUMN is_new INTEGER NOT NULL DEFAULT 0"),
            ("technicians", "phone_digits", "ALTER TABLE technicians ADD COLUMN phone_digits TEXT"),
            ("city_centroids", "zip", "ALTER TABLE city_centroids ADD COLUMN zip TEXT"),
        ]

        for table, column, statement in migrations:
            # Check if column exists
            try:
                self.connection.execute(f"SELECT {column} FROM {table} LIMIT 1")
                logger.debug(f"Migration: {table}.{column} already exists")
            except Exception:
                # Column doesn't exist, add it
                try:
                    self.connection.execute(statement)
                    self.connection.commit()
                    logger.info(f"Migration: Added {column} to {table}")
                except Exception as e:
                    error_str = str(e).lower()
                    if "duplicate" in error_str or "already exists" in error_str:
                        logger.debug(f"Migration: {table}.{column} already exists (from error)")
                    else:
                        logger.error(f"Migration failed for {table}.{column}: {e}")

        self._backfill_phone_digits()
        try:
            self.connection.execute(
                "CREATE UNIQUE INDEX IF NOT EXISTS idx_technicians_phone_digits ON technicians(phone_digits)"
            )
            self.connection.commit()
        except Exception as e:
            # Existing rows share a number in different formats; merge them, then rerun
            logger.error(f"Migration failed for technicians.phone_digits unique index: {e}")

    def _backfill_phone_digits(self) -> None:
        """Fill phone_digits for rows written before the column existed."""
        rows = self.connection.execute(
            "SELECT id, phone FROM technicians WHERE phone_digits IS NULL AND phone IS NOT NULL"
        ).fetchall()
        updates = [(_phone_key(phone), tech_id) for tech_id, phone in rows if _phone_key(phone)]
        if not updates:
            return
        self.execute_many("UPDATE technicians SET phone_digits = ? WHERE id = ?", updates)
        logger.info(f"Migration: Backfilled phone_digits for {len(updates)} technicians")

    # --- Technician CRUD ---

    def get_technicians(self, active_only: bool = False) -> list[TechnicianRecord]:
        """Get all technicians ordered by name."""
        query = f"SELECT {TECHNICIAN_COLUMNS} FROM technicians"
        if active_only:
            query += " WHERE is_active = 1"
        rows = self.execute(query + " ORDER BY name")
        return [_row_to_technician(r) for r in rows]

    def get_technician(self, technician_id: str) -> TechnicianRecord | None:
        """Get technician by ID."""
        rows = self.execute(
            f"SELECT {TECHNICIAN_COLUMNS} FROM technicians WHERE id = ?",
            (technician_id,),
        )
        if not rows:
            return None
        return _row_to_technician(rows[0])

    def insert_technician(self, record: TechnicianRecord) -> str:
        """Insert one technician. Assigns and returns its id."""
        if not record.id:
            record.id = uuid.uuid4().hex
        self.execute_write(
            "INSERT INTO technicians (id, name, phone, phone_digits, email, specialty, city, state, zip, "
            "latitude, longitude, service_radius_miles, priority, notes, is_active, is_new, created_by) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            _technician_params(record),
        )
        return record.id

    def insert_technicians_batch(self, records: list[TechnicianRecord], commit: bool = True) -> list[str]:
        """Batch INSERT technicians. Assigns ids; returns them in input order."""
        for record in records:
            if not record.id:
                record.id = uuid.uuid4().hex
        self.execute_many(
            "INSERT INTO technicians (id, name, phone, phone_digits, email, specialty, city, state, zip, "
            "latitude, longitude, service_radius_miles, priority, notes, is_active, is_new, created_by) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            [_technician_params(r) for r in records],
            commit=commit,
        )
        return [r.id for r in records]

    def update_technician(self, record: TechnicianRecord) -> None:
        """Update a technician's editable fields."""
        self.execute_write(
            "UPDATE technicians SET name = ?, phone = ?, phone_digits = ?, email = ?, specialty = ?, "
            "city = ?, state = ?, zip = ?, latitude = ?, longitude = ?, "
            "service_radius_miles = ?, priority = ?, notes = ?, is_new = ?, "
            "updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (
                record.name,
                record.phone or None,
                _phone_key(record.phone),
                record.email or None,
                json.dumps(record.specialty or []),
                record.city,
                record.state,
                record.zip,
                record.latitude,
                record.longitude,
                record.service_radius_miles,
                record.priority,
                record.notes or None,
                1 if record.is_new else 0,
                record.id,
            ),
        )

    def set_technician_active(self, technician_id: str, is_active: bool) -> None:
        """Activate or deactivate a technician."""
        self.execute_write(
            "UPDATE technicians SET is_active = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (1 if is_active else 0, technician_id),
        )

    def delete_technician(self, technician_id: str) -> None:
        """Delete technician."""
        self.execute_write("DELETE FROM technicians WHERE id = ?", (technician_id,))

    def delete_technicians(self, technician_ids: list[str]) -> None:
        """Delete several technicians in one statement."""
        if not technician_ids:
            return
        placeholders = ",".join("?" for _ in technician_ids)
        self.execute_write(
            f"DELETE FROM technicians WHERE id IN ({placeholders})",
            tuple(technician_ids),
        )

    def get_all_phones(self) -> list[str]:
        """Get every phone on file (as stored, possibly formatted)."""
        rows = self.execute("SELECT phone FROM technicians WHERE phone IS NOT NULL AND phone != ''")
        return [r[0] for r in rows]

    # --- Centroid cache ---

    def get_zip_centroids(self, zips: list[str], batch_size: int = 500) -> dict[str, Centroid]:
        """Look up ZIP centroids. Returns dict of zip -> Centroid for hits only."""
        if not zips:
            return {}
        batch_size = min(batch_size, MAX_LOOKUP_BATCH)
        result = {}
        for i in range(0, len(zips), batch_size):
            batch = zips[i : i + batch_size]
            placeholders = ",".join("?" for _ in batch)
            rows = self.execute(
                f"SELECT zip, latitude, longitude FROM zip_centroids WHERE zip IN ({placeholders})",
                tuple(batch),
            )
            result.update({r[0]: Centroid(latitude=r[1], longitude=r[2], zip=r[0]) for r in rows})
        return result

    def get_city_centroids(
        self, pairs: list[tuple[str, str]], batch_size: int = 500
    ) -> dict[tuple[str, str], Centroid]:
        """Look up city centroids by (city, state).

        City match is case-insensitive, state match is exact. Returns dict of
        (lowercased city, state) -> Centroid; the first row wins when several match.
        """
        if not pairs:
            return {}
        batch_size = min(batch_size, MAX_LOOKUP_BATCH - 1)

        cities_by_state: dict[str, list[str]] = {}
        for city, state in pairs:
            cities_by_state.setdefault(state, []).append(city.lower())

        result = {}
        for state, cities in cities_by_state.items():
            for i in range(0, len(cities), batch_size):
                batch = cities[i : i + batch_size]
                placeholders = ",".join("?" for _ in batch)
                rows = self.execute(
                    "SELECT city, state, latitude, longitude, zip FROM city_centroids "
                    f"WHERE state = ? AND lower(city) IN ({placeholders})",
                    (state, *batch),
                )
                for r in rows:
                    result.setdefault(
                        (r[0].lower(), r[1]),
                        Centroid(latitude=r[2], longitude=r[3], zip=r[4]),
                    )
        return result

    def upsert_zip_centroids(self, params_list: list[tuple]) -> None:
        """Batch upsert ZIP centroids. Each tuple: (zip, latitude, longitude)."""
        self.execute_many(
            """INSERT INTO zip_centroids (zip, latitude, longitude)
               VALUES (?, ?, ?)
               ON CONFLICT(zip) DO UPDATE SET
                   latitude = excluded.latitude, longitude = excluded.longitude""",
            params_list,
        )

    def upsert_city_centroids(self, params_list: list[tuple]) -> None:
        """Batch upsert city centroids. Each tuple: (city, state, latitude, longitude, zip)."""
        self.execute_many(
            """INSERT INTO city_centroids (city, state, latitude, longitude, zip)
               VALUES (?, ?, ?, ?, ?)
               ON CONFLICT(city, state) DO UPDATE SET
                   latitude = excluded.latitude, longitude = excluded.longitude,
                   zip = COALESCE(excluded.zip, city_centroids.zip)""",
            params_list,
        )

    def count_zip_centroids(self) -> int:
        """Count cached ZIP centroids."""
        rows = self.execute("SELECT COUNT(*) FROM zip_centroids")
        return rows[0][0] if rows else 0

    def count_city_centroids(self) -> int:
        """Count cached city centroids (for idempotent seeding check)."""
        rows = self.execute("SELECT COUNT(*) FROM city_centroids")
        return rows[0][0] if rows else 0


@st.cache_resource(ttl=3600)  # Refresh connection every hour to prevent stale connections
def get_database() -> TursoDatabase:
    """Get cached database instance from Streamlit secrets."""
    db = TursoDatabase(
        url=st.secrets["TURSO_DATABASE_URL"],
        auth_token=st.secrets["TURSO_AUTH_TOKEN"],
    )
    db.init_schema()
    return db
