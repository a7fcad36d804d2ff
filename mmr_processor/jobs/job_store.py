#!/usr/bin/env python3
"""
Job stores - key-value persistence of job records with TTL expiry and a
per-user index ordered by creation time.
Every write refreshes the record's TTL; expired records read as missing.
"""

import logging
import sqlite3
import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from mmr_processor.models.job_models import JobMetadata

DEFAULT_TTL_SECONDS = 7 * 24 * 3600

JobUpdate = Callable[[JobMetadata], JobMetadata]


class JobStore(ABC):
    """Abstract base class for job record storage"""

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.logger = logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def get(self, job_id: str) -> Optional[JobMetadata]:
        """Return the record, or None when missing or expired"""
        pass

    @abstractmethod
    def put(self, job: JobMetadata) -> None:
        """Insert or replace a record and add it to its owner's index"""
        pass

    @abstractmethod
    def update(self, job_id: str, fn: JobUpdate) -> Optional[JobMetadata]:
        """Atomic read-modify-write of one record; None when the record does not exist"""
        pass

    @abstractmethod
    def delete(self, job_id: str) -> bool:
        """Remove the record and its index entry"""
        pass

    @abstractmethod
    def list_user_job_ids(self, user_id: str, offset: int = 0, limit: int = 50) -> List[str]:
        """Job ids of a user, newest first"""
        pass

    @abstractmethod
    def purge_expired(self) -> int:
        """Drop expired records, returning how many were removed"""
        pass

    def _expires_at(self) -> float:
        return self.clock() + self.ttl_seconds


class InMemoryJobStore(JobStore):
    """Thread-safe in-process store, used by tests and single-process deployments"""

    def __init__(self, ttl_seconds: int = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.time):
        super().__init__(ttl_seconds, clock)
        self._lock = threading.RLock()
        self._records: Dict[str, Tuple[float, JobMetadata]] = {}
        self._user_index: Dict[str, Dict[str, Tuple[float, int]]] = {}
        self._sequence = 0

    def get(self, job_id: str) -> Optional[JobMetadata]:
        with self._lock:
            job = self._live_record(job_id)
            return job.model_copy(deep=True) if job else None

    def put(self, job: JobMetadata) -> None:
        with self._lock:
            self._records[job.job_id] = (self._expires_at(), job.model_copy(deep=True))
            user_jobs = self._user_index.setdefault(job.user_id, {})
            if job.job_id not in user_jobs:
                self._sequence += 1
                user_jobs[job.job_id] = (job.created_at.timestamp(), self._sequence)

    def update(self, job_id: str, fn: JobUpdate) -> Optional[JobMetadata]:
        with self._lock:
            job = self._live_record(job_id)
            if job is None:
                return None
            updated = fn(job.model_copy(deep=True))
            self._records[job_id] = (self._expires_at(), updated.model_copy(deep=True))
            return updated

    def delete(self, job_id: str) -> bool:
        with self._lock:
            record = self._records.pop(job_id, None)
            if record is None:
                return False
            user_jobs = self._user_index.get(record[1].user_id, {})
            user_jobs.pop(job_id, None)
            return True

    def list_user_job_ids(self, user_id: str, offset: int = 0, limit: int = 50) -> List[str]:
        with self._lock:
            user_jobs = self._user_index.get(user_id, {})
            live = [job_id for job_id in list(user_jobs) if self._live_record(job_id) is not None]
            live.sort(key=lambda job_id: user_jobs[job_id], reverse=True)
            return live[offset:offset + limit]

    def purge_expired(self) -> int:
        with self._lock:
            now = self.clock()
            expired = [job_id for job_id, (expires_at, _) in self._records.items() if expires_at <= now]
            for job_id in expired:
                self.delete(job_id)
            if expired:
                self.logger.info(f"Purged {len(expired)} expired jobs")
            return len(expired)

    def _live_record(self, job_id: str) -> Optional[JobMetadata]:
        record = self._records.get(job_id)
        if record is None:
            return None
        expires_at, job = record
        if expires_at <= self.clock():
            self.delete(job_id)
            return None
        return job


class SQLiteJobStore(JobStore):
    """Durable store backed by a SQLite database file"""

    def __init__(self, db_path: str, ttl_seconds: int = DEFAULT_TTL_SECONDS,
                 clock: Callable[[], float] = time.time):
        super().__init__(ttl_seconds, clock)
        self.db_path = db_path
        self._lock = threading.RLock()
        self._shared_conn: Optional[sqlite3.Connection] = None
        if db_path == ':memory:':
            self._shared_conn = sqlite3.connect(db_path, check_same_thread=False)
        self._init_database()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        if self._shared_conn is not None:
            with self._shared_conn:
                yield self._shared_conn
            return
        conn = sqlite3.connect(self.db_path, timeout=30)
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def _init_database(self) -> None:
        """Create the jobs table and its user index"""
        with self._lock, self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                CREATE TABLE IF NOT EXISTS mmr_jobs (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    job_id TEXT UNIQUE NOT NULL,
                    user_id TEXT NOT NULL,
                    created_at REAL NOT NULL,
                    expires_at REAL NOT NULL,
                    data TEXT NOT NULL
                )
            ''')
            cursor.execute(
                'CREATE INDEX IF NOT EXISTS idx_mmr_jobs_user ON mmr_jobs (user_id, created_at)'
            )
        self.logger.info(f"Job store ready at {self.db_path}")

    def get(self, job_id: str) -> Optional[JobMetadata]:
        with self._lock, self._connect() as conn:
            return self._select(conn, job_id)

    def put(self, job: JobMetadata) -> None:
        with self._lock, self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute('SELECT seq FROM mmr_jobs WHERE job_id = ?', (job.job_id,))
            if cursor.fetchone():
                cursor.execute(
                    'UPDATE mmr_jobs SET expires_at = ?, data = ? WHERE job_id = ?',
                    (self._expires_at(), job.model_dump_json(), job.job_id)
                )
            else:
                cursor.execute(
                    'INSERT INTO mmr_jobs (job_id, user_id, created_at, expires_at, data) VALUES (?, ?, ?, ?, ?)',
                    (job.job_id, job.user_id, job.created_at.timestamp(), self._expires_at(), job.model_dump_json())
                )

    def update(self, job_id: str, fn: JobUpdate) -> Optional[JobMetadata]:
        with self._lock, self._connect() as conn:
            job = self._select(conn, job_id)
            if job is None:
                return None
            updated = fn(job)
            conn.execute(
                'UPDATE mmr_jobs SET expires_at = ?, data = ? WHERE job_id = ?',
                (self._expires_at(), updated.model_dump_json(), job_id)
            )
            return updated

    def delete(self, job_id: str) -> bool:
        with self._lock, self._connect() as conn:
            cursor = conn.execute('DELETE FROM mmr_jobs WHERE job_id = ?', (job_id,))
            return cursor.rowcount > 0

    def list_user_job_ids(self, user_id: str, offset: int = 0, limit: int = 50) -> List[str]:
        with self._lock, self._connect() as conn:
            cursor = conn.execute(
                '''SELECT job_id FROM mmr_jobs
                   WHERE user_id = ? AND expires_at > ?
                   ORDER BY created_at DESC, seq DESC
                   LIMIT ? OFFSET ?''',
                (user_id, self.clock(), limit, offset)
            )
            return [row[0] for row in cursor.fetchall()]

    def purge_expired(self) -> int:
        with self._lock, self._connect() as conn:
            cursor = conn.execute('DELETE FROM mmr_jobs WHERE expires_at <= ?', (self.clock(),))
            purged = cursor.rowcount
        if purged:
            self.logger.info(f"Purged {purged} expired jobs")
        return purged

    def close(self) -> None:
        if self._shared_conn is not None:
            self._shared_conn.close()
            self._shared_conn = None

    def _select(self, conn: sqlite3.Connection, job_id: str) -> Optional[JobMetadata]:
        cursor = conn.execute(
            'SELECT data FROM mmr_jobs WHERE job_id = ? AND expires_at > ?',
            (job_id, self.clock())
        )
        row = cursor.fetchone()
        return JobMetadata.model_validate_json(row[0]) if row else None
