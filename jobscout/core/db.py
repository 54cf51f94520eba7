"""SQLite database layer for postings, recruiter contacts, and scrape run tracking."""

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from jobscout.core.schemas import (
    PostingFilter,
    RecruiterContact,
    ScrapedPosting,
    ScrapeLog,
    ScrapeRun,
    StoredPosting,
)

_POSTINGS_TABLE = """
CREATE TABLE IF NOT EXISTS postings (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    platform         TEXT    NOT NULL,
    external_id      TEXT,
    title            TEXT    NOT NULL,
    company          TEXT    NOT NULL,
    location         TEXT    NOT NULL,
    is_remote        INTEGER NOT NULL DEFAULT 0,
    salary_text      TEXT,
    salary_min       REAL,
    salary_max       REAL,
    salary_type      TEXT,
    employment_type  TEXT,
    description      TEXT,
    description_html TEXT,
    requirements     TEXT,
    posted_at        TEXT    NOT NULL,
    posted_at_raw    TEXT    NOT NULL DEFAULT '',
    apply_url        TEXT    NOT NULL,
    source_url       TEXT,
    dedup_hash       TEXT    NOT NULL UNIQUE,
    run_id           TEXT,
    created_at       TEXT    NOT NULL
);
"""

_CONTACTS_TABLE = """
CREATE TABLE IF NOT EXISTS recruiter_contacts (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    name         TEXT NOT NULL DEFAULT '',
    email        TEXT NOT NULL DEFAULT '',
    phone        TEXT,
    linkedin_url TEXT,
    company      TEXT NOT NULL DEFAULT '',
    title        TEXT,
    source       TEXT NOT NULL,
    created_at   TEXT NOT NULL,
    UNIQUE(name, email, company)
);
"""

_SCRAPE_RUNS_TABLE = """
CREATE TABLE IF NOT EXISTS scrape_runs (
    id             TEXT PRIMARY KEY,
    requested_by   TEXT,
    trigger_type   TEXT    NOT NULL,
    status         TEXT    NOT NULL,
    platforms      TEXT    NOT NULL,
    profiles_used  TEXT    NOT NULL,
    total_found    INTEGER NOT NULL DEFAULT 0,
    new_jobs       INTEGER NOT NULL DEFAULT 0,
    errors         INTEGER NOT NULL DEFAULT 0,
    duration_ms    INTEGER,
    started_at     TEXT    NOT NULL,
    completed_at   TEXT,
    error_summary  TEXT
);
"""

_SCRAPE_LOGS_TABLE = """
CREATE TABLE IF NOT EXISTS scrape_logs (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    run_id         TEXT    NOT NULL,
    platform       TEXT    NOT NULL,
    status         TEXT    NOT NULL,
    url            TEXT    NOT NULL DEFAULT '',
    duration_ms    INTEGER NOT NULL DEFAULT 0,
    jobs_found     INTEGER NOT NULL DEFAULT 0,
    error_message  TEXT,
    created_at     TEXT    NOT NULL
);
"""

_ORDER_COLUMNS = {"posted_at", "salary_max", "created_at"}


def init_db(path: str | Path) -> sqlite3.Connection:
    """Create the database and tables, returning a connection."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(_POSTINGS_TABLE)
    conn.execute(_CONTACTS_TABLE)
    conn.execute(_SCRAPE_RUNS_TABLE)
    conn.execute(_SCRAPE_LOGS_TABLE)
    conn.execute("CREATE INDEX IF NOT EXISTS idx_postings_posted_at ON postings(posted_at)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_scrape_logs_run ON scrape_logs(run_id)")
    conn.commit()
    return conn


def _ts(value: datetime) -> str:
    """UTC ISO-8601 so stored timestamps compare lexicographically."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _now() -> str:
    return _ts(datetime.now(timezone.utc))


# --- Postings ---


def insert_posting(
    conn: sqlite3.Connection,
    posting: ScrapedPosting,
    run_id: str | None = None,
) -> bool:
    """Insert a posting, ignoring it if dedup_hash already exists.

    Returns True if a new row was inserted, False if it was a duplicate.
    """
    try:
        conn.execute(
            """
            INSERT INTO postings
                (platform, external_id, title, company, location, is_remote,
                 salary_text, salary_min, salary_max, salary_type, employment_type,
                 description, description_html, requirements, posted_at,
                 posted_at_raw, apply_url, source_url, dedup_hash, run_id, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                posting.platform,
                posting.external_id,
                posting.title,
                posting.company,
                posting.location,
                int(posting.is_remote),
                posting.salary_text,
                posting.salary_min,
                posting.salary_max,
                posting.salary_type,
                posting.employment_type,
                posting.description,
                posting.description_html,
                posting.requirements,
                _ts(posting.posted_at),
                posting.posted_at_raw,
                posting.apply_url,
                posting.source_url,
                posting.dedup_hash,
                run_id,
                _now(),
            ),
        )
        conn.commit()
        return True
    except sqlite3.IntegrityError:
        return False


def posting_exists(conn: sqlite3.Connection, dedup_hash: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM postings WHERE dedup_hash = ? LIMIT 1", (dedup_hash,),
    ).fetchone()
    return row is not None


def count_postings(conn: sqlite3.Connection) -> int:
    row = conn.execute("SELECT COUNT(*) AS n FROM postings").fetchone()
    return int(row["n"])


def query_postings(
    conn: sqlite3.Connection,
    filters: PostingFilter,
    like_groups: list[list[str]] | None = None,
) -> tuple[list[StoredPosting], int]:
    """Return one page of postings matching filters, plus the total match count.

    like_groups is an OR of AND-ed title LIKE patterns (keyword prefilter).
    An empty list of groups matches nothing.
    """
    where, params = _build_where(filters, like_groups)
    direction = "ASC" if filters.order_dir == "asc" else "DESC"
    order_by = filters.order_by if filters.order_by in _ORDER_COLUMNS else "posted_at"

    total_row = conn.execute(f"SELECT COUNT(*) AS n FROM postings {where}", params).fetchone()
    rows = conn.execute(
        f"SELECT * FROM postings {where} ORDER BY {order_by} {direction}, id {direction} LIMIT ? OFFSET ?",
        [*params, filters.limit, filters.offset],
    ).fetchall()
    return [_row_to_posting(r) for r in rows], int(total_row["n"])


def iter_postings(
    conn: sqlite3.Connection,
    filters: PostingFilter,
    like_groups: list[list[str]] | None = None,
) -> list[StoredPosting]:
    """All postings matching filters, ignoring limit/offset."""
    where, params = _build_where(filters, like_groups)
    direction = "ASC" if filters.order_dir == "asc" else "DESC"
    order_by = filters.order_by if filters.order_by in _ORDER_COLUMNS else "posted_at"
    rows = conn.execute(
        f"SELECT * FROM postings {where} ORDER BY {order_by} {direction}, id {direction}", params,
    ).fetchall()
    return [_row_to_posting(r) for r in rows]


def _build_where(
    filters: PostingFilter,
    like_groups: list[list[str]] | None,
) -> tuple[str, list[Any]]:
    clauses: list[str] = []
    params: list[Any] = []

    if filters.platform:
        clauses.append("platform = ?")
        params.append(filters.platform.lower())
    if filters.is_remote is not None:
        clauses.append("is_remote = ?")
        params.append(int(filters.is_remote))
    if filters.employment_type:
        clauses.append("LOWER(employment_type) = ?")
        params.append(filters.employment_type.lower())
    if filters.company:
        clauses.append("company LIKE ?")
        params.append(f"%{filters.company}%")
    if filters.location:
        clauses.append("location LIKE ?")
        params.append(f"%{filters.location}%")
    if filters.search:
        clauses.append("(title LIKE ? OR company LIKE ? OR description LIKE ?)")
        params.extend([f"%{filters.search}%"] * 3)
    if filters.min_salary is not None:
        clauses.append("salary_min >= ?")
        params.append(filters.min_salary)
    if filters.max_salary is not None:
        clauses.append("salary_max <= ?")
        params.append(filters.max_salary)
    if filters.posted_after is not None:
        clauses.append("posted_at >= ?")
        params.append(_ts(filters.posted_after))
    if filters.posted_before is not None:
        clauses.append("posted_at <= ?")
        params.append(_ts(filters.posted_before))

    if like_groups is not None:
        if not like_groups:
            clauses.append("0")
        else:
            group_sql = []
            for patterns in like_groups:
                group_sql.append("(" + " AND ".join("LOWER(title) LIKE ?" for _ in patterns) + ")")
                params.extend(patterns)
            clauses.append("(" + " OR ".join(group_sql) + ")")

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, params


def _row_to_posting(row: sqlite3.Row) -> StoredPosting:
    data = dict(row)
    data["is_remote"] = bool(data["is_remote"])
    data.pop("run_id", None)
    return StoredPosting.model_validate(data)


# --- Recruiter contacts ---


def insert_recruiter_contact(conn: sqlite3.Connection, contact: RecruiterContact) -> bool:
    """Insert a contact, ignoring if (name, email, company) already exists."""
    try:
        conn.execute(
            """
            INSERT INTO recruiter_contacts
                (name, email, phone, linkedin_url, company, title, source, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                contact.name or "",
                contact.email or "",
                contact.phone,
                contact.linkedin_url,
                contact.company or "",
                contact.title,
                contact.source,
                _now(),
            ),
        )
        conn.commit()
        return True
    except sqlite3.IntegrityError:
        return False


def list_recruiter_contacts(conn: sqlite3.Connection, company: str | None = None) -> list[RecruiterContact]:
    if company:
        rows = conn.execute(
            "SELECT * FROM recruiter_contacts WHERE company LIKE ? ORDER BY id", (f"%{company}%",),
        ).fetchall()
    else:
        rows = conn.execute("SELECT * FROM recruiter_contacts ORDER BY id").fetchall()
    return [
        RecruiterContact(
            name=r["name"] or None,
            email=r["email"] or None,
            phone=r["phone"],
            linkedin_url=r["linkedin_url"],
            company=r["company"] or None,
            title=r["title"],
            source=r["source"],
        )
        for r in rows
    ]


# --- Scrape runs and logs ---


def create_scrape_run(conn: sqlite3.Connection, run: ScrapeRun) -> None:
    """Record a run in its initial state."""
    conn.execute(
        """
        INSERT INTO scrape_runs
            (id, requested_by, trigger_type, status, platforms, profiles_used,
             total_found, new_jobs, errors, started_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            run.id,
            run.requested_by,
            run.trigger_type,
            run.status,
            json.dumps(run.platforms),
            json.dumps(run.profiles_used),
            run.total_found,
            run.new_jobs,
            run.errors,
            _ts(run.started_at),
        ),
    )
    conn.commit()


def finalize_scrape_run(
    conn: sqlite3.Connection,
    run_id: str,
    *,
    status: str,
    total_found: int,
    new_jobs: int,
    errors: list[str],
    duration_ms: int,
    completed_at: datetime,
) -> None:
    """Write the terminal state of a run. error_summary is stored as a JSON list."""
    conn.execute(
        """
        UPDATE scrape_runs
        SET status = ?, total_found = ?, new_jobs = ?, errors = ?,
            duration_ms = ?, completed_at = ?, error_summary = ?
        WHERE id = ?
        """,
        (
            status,
            total_found,
            new_jobs,
            len(errors),
            duration_ms,
            _ts(completed_at),
            json.dumps(errors) if errors else None,
            run_id,
        ),
    )
    conn.commit()


def get_scrape_run(conn: sqlite3.Connection, run_id: str) -> ScrapeRun | None:
    row = conn.execute("SELECT * FROM scrape_runs WHERE id = ?", (run_id,)).fetchone()
    return _row_to_run(row) if row is not None else None


def list_scrape_runs(conn: sqlite3.Connection, limit: int = 20, offset: int = 0) -> list[ScrapeRun]:
    """Most recent runs first."""
    rows = conn.execute(
        "SELECT * FROM scrape_runs ORDER BY started_at DESC LIMIT ? OFFSET ?", (limit, offset),
    ).fetchall()
    return [_row_to_run(r) for r in rows]


def _row_to_run(row: sqlite3.Row) -> ScrapeRun:
    data = dict(row)
    data["platforms"] = json.loads(data["platforms"])
    data["profiles_used"] = json.loads(data["profiles_used"])
    return ScrapeRun.model_validate(data)


def insert_scrape_log(conn: sqlite3.Connection, log: ScrapeLog) -> int:
    """Record one source outcome. Returns the row ID."""
    cursor = conn.execute(
        """
        INSERT INTO scrape_logs
            (run_id, platform, status, url, duration_ms, jobs_found, error_message, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        (
            log.run_id,
            log.platform,
            log.status,
            log.url,
            log.duration_ms,
            log.jobs_found,
            log.error_message,
            _ts(log.created_at),
        ),
    )
    conn.commit()
    return cursor.lastrowid or 0


def list_scrape_logs(conn: sqlite3.Connection, run_id: str) -> list[ScrapeLog]:
    rows = conn.execute(
        "SELECT * FROM scrape_logs WHERE run_id = ? ORDER BY id", (run_id,),
    ).fetchall()
    return [
        ScrapeLog(
            run_id=r["run_id"],
            platform=r["platform"],
            status=r["status"],
            url=r["url"],
            duration_ms=r["duration_ms"],
            jobs_found=r["jobs_found"],
            error_message=r["error_message"],
            created_at=r["created_at"],
        )
        for r in rows
    ]
