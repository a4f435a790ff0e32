import json
import sqlite3
import uuid
from pathlib import Path
from typing import Optional

import sqlite_utils

from earlyjob.errors import DuplicateRecordError, PersistenceError
from earlyjob.hashing import normalize_company_name
from earlyjob.models import (
    Alert,
    Company,
    HiringSignal,
    JobPost,
    RotationState,
    UserPreference,
    utcnow,
)

JSON_COLUMNS = {
    "jobs": ["tech_stack"],
    "alerts": ["data"],
    "hiring_signals": ["metadata"],
    "user_preferences": ["keywords"],
}


def _new_id() -> str:
    return str(uuid.uuid4())


class JobStore:
    """Canonical store for companies, jobs, signals, alerts and rotation state.

    Uniqueness constraints on companies.name_key, jobs.dedup_hash and
    hiring_signals(company_id, title) back up the read-before-insert checks
    done by callers. A violation surfaces as DuplicateRecordError.
    """

    def __init__(self, db_path: str = "data/earlyjob.db"):
        if db_path == ":memory:":
            self.db = sqlite_utils.Database(memory=True)
        else:
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            self.db = sqlite_utils.Database(db_path)
        self._init_tables()

    def close(self):
        self.db.conn.close()

    def _init_tables(self):
        tables = self.db.table_names()

        if "companies" not in tables:
            self.db["companies"].create(
                {
                    "id": str,
                    "name": str,
                    "name_key": str,
                    "website": str,
                    "industry": str,
                    "size_category": str,
                    "logo_url": str,
                    "careers_page_url": str,
                    "linkedin_url": str,
                    "employee_count": int,
                    "description": str,
                },
                pk="id",
            )
            self.db["companies"].create_index(["name_key"], unique=True)

        if "jobs" not in tables:
            self.db["jobs"].create(
                {
                    "id": str,
                    "company_id": str,
                    "company_name": str,
                    "title": str,
                    "description": str,
                    "department": str,
                    "seniority_level": str,
                    "location": str,
                    "country": str,
                    "is_remote": bool,
                    "remote_type": str,
                    "salary_min": float,
                    "salary_max": float,
                    "salary_currency": str,
                    "job_type": str,
                    "source_type": str,
                    "source_url": str,
                    "external_id": str,
                    "posted_date": str,
                    "expires_date": str,
                    "is_active": bool,
                    "tech_stack": str,  # JSON
                    "dedup_hash": str,
                    "created_at": str,
                },
                pk="id",
            )
            self.db["jobs"].create_index(["dedup_hash"], unique=True)
            self.db["jobs"].create_index(["external_id"])

        if "api_rotation" not in tables:
            self.db["api_rotation"].create(
                {
                    "api_name": str,
                    "last_used_at": str,
                    "requests_used": int,
                    "monthly_limit": int,
                    "status": str,
                    "error_count": int,
                    "last_error": str,
                },
                pk="api_name",
            )

        if "hiring_signals" not in tables:
            self.db["hiring_signals"].create(
                {
                    "id": str,
                    "company_id": str,
                    "signal_type": str,
                    "title": str,
                    "description": str,
                    "confidence_score": float,
                    "source_url": str,
                    "detected_at": str,
                    "metadata": str,  # JSON
                },
                pk="id",
            )
            self.db["hiring_signals"].create_index(["company_id", "title"], unique=True)

        if "alerts" not in tables:
            self.db["alerts"].create(
                {
                    "id": str,
                    "user_id": str,
                    "company_id": str,
                    "alert_type": str,
                    "title": str,
                    "message": str,
                    "data": str,  # JSON
                    "sent_at": str,
                    "read_at": str,
                    "clicked_at": str,
                },
                pk="id",
            )
            self.db["alerts"].create_index(["user_id"])

        if "user_preferences" not in tables:
            self.db["user_preferences"].create(
                {
                    "user_id": str,
                    "keywords": str,  # JSON
                    "remote_only": bool,
                    "salary_min": float,
                    "is_active": bool,
                },
                pk="user_id",
            )

        if "user_company_tracks" not in tables:
            self.db["user_company_tracks"].create(
                {"user_id": str, "company_id": str, "created_at": str},
                pk=["user_id", "company_id"],
            )

    # ------------------------------------------------------------------
    # Low-level helpers
    # ------------------------------------------------------------------

    def _decode(self, table: str, row: dict) -> dict:
        for column in JSON_COLUMNS.get(table, []):
            value = row.get(column)
            if isinstance(value, str):
                row[column] = json.loads(value)
        return row

    def _first(self, table: str, where: str, args: list) -> Optional[dict]:
        for row in self.db[table].rows_where(where, args, limit=1):
            return self._decode(table, row)
        return None

    def _insert(self, table: str, record: dict):
        try:
            self.db[table].insert(record)
        except sqlite3.IntegrityError as e:
            raise DuplicateRecordError(f"{table}: {e}") from e
        except sqlite3.Error as e:
            raise PersistenceError(f"{table}: {e}") from e

    def count(self, table: str) -> int:
        return self.db[table].count

    # ------------------------------------------------------------------
    # Companies
    # ------------------------------------------------------------------

    def find_company_by_name(self, name: str) -> Optional[Company]:
        """Case-insensitive exact match, then match on the normalized key"""
        row = self._first("companies", "lower(name) = lower(?)", [name.strip()])
        if row is None:
            row = self._first("companies", "name_key = ?", [normalize_company_name(name)])
        if row is None:
            return None
        row.pop("name_key", None)
        return Company(**row)

    def insert_company(self, company: Company) -> str:
        company_id = company.id or _new_id()
        record = company.model_dump(exclude={"id"})
        record["id"] = company_id
        record["name_key"] = normalize_company_name(company.name)
        self._insert("companies", record)
        return company_id

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def find_job_by_external_id_or_hash(
        self, external_id: Optional[str], dedup_hash: str
    ) -> Optional[dict]:
        if external_id:
            return self._first(
                "jobs", "external_id = ? or dedup_hash = ?", [external_id, dedup_hash]
            )
        return self._first("jobs", "dedup_hash = ?", [dedup_hash])

    def insert_job(self, job: JobPost) -> str:
        job_id = job.id or _new_id()
        record = job.model_dump(mode="json", exclude={"id"})
        record["id"] = job_id
        record["created_at"] = utcnow().isoformat()
        self._insert("jobs", record)
        return job_id

    def find_jobs_by_ids(self, job_ids: list[str]) -> list[JobPost]:
        if not job_ids:
            return []
        placeholders = ", ".join("?" for _ in job_ids)
        rows = self.db["jobs"].rows_where(f"id in ({placeholders})", list(job_ids))
        jobs = []
        for row in rows:
            row = self._decode("jobs", row)
            row.pop("created_at", None)
            jobs.append(JobPost(**row))
        return jobs

    # ------------------------------------------------------------------
    # Hiring signals
    # ------------------------------------------------------------------

    def find_signal_by_company_and_title(self, company_id: str, title: str) -> Optional[dict]:
        return self._first("hiring_signals", "company_id = ? and title = ?", [company_id, title])

    def insert_signal(self, signal: HiringSignal) -> str:
        signal_id = signal.id or _new_id()
        record = signal.model_dump(mode="json", exclude={"id"})
        record["id"] = signal_id
        self._insert("hiring_signals", record)
        return signal_id

    # ------------------------------------------------------------------
    # Alerts and the user read model
    # ------------------------------------------------------------------

    def insert_alerts(self, alerts: list[Alert]) -> list[str]:
        """Insert all alerts in a single batch"""
        if not alerts:
            return []
        records = []
        for alert in alerts:
            record = alert.model_dump(mode="json", exclude={"id"})
            record["id"] = alert.id or _new_id()
            records.append(record)
        try:
            self.db["alerts"].insert_all(records)
        except sqlite3.Error as e:
            raise PersistenceError(f"alerts: {e}") from e
        return [r["id"] for r in records]

    def find_alerts_for_user(self, user_id: str) -> list[Alert]:
        rows = self.db["alerts"].rows_where("user_id = ?", [user_id], order_by="sent_at")
        return [Alert(**self._decode("alerts", row)) for row in rows]

    def find_users_tracking_company(self, company_id: str) -> list[str]:
        rows = self.db["user_company_tracks"].rows_where(
            "company_id = ?", [company_id], order_by="created_at"
        )
        return [row["user_id"] for row in rows]

    def track_company(self, user_id: str, company_id: str):
        self.db["user_company_tracks"].insert(
            {"user_id": user_id, "company_id": company_id, "created_at": utcnow().isoformat()},
            ignore=True,
        )

    def save_preferences(self, preference: UserPreference):
        record = preference.model_dump(exclude={"tracked_company_ids"})
        self.db["user_preferences"].upsert(record, pk="user_id")
        for company_id in preference.tracked_company_ids:
            self.track_company(preference.user_id, company_id)

    def find_active_profiles_with_preferences(self) -> list[UserPreference]:
        profiles = []
        for row in self.db["user_preferences"].rows_where("is_active = 1"):
            row = self._decode("user_preferences", row)
            tracks = self.db["user_company_tracks"].rows_where("user_id = ?", [row["user_id"]])
            row["tracked_company_ids"] = [t["company_id"] for t in tracks]
            preference = UserPreference(**row)
            if preference.has_criteria:
                profiles.append(preference)
        return profiles

    # ------------------------------------------------------------------
    # API rotation state
    # ------------------------------------------------------------------

    def list_active_rotation_states(self) -> list[RotationState]:
        """Active APIs, least recently used first (never used sorts first)"""
        rows = self.db["api_rotation"].rows_where(
            "status = ?", ["active"], order_by="last_used_at, api_name"
        )
        return [RotationState(**row) for row in rows]

    def get_rotation_state(self, api_name: str) -> Optional[RotationState]:
        row = self._first("api_rotation", "api_name = ?", [api_name])
        return RotationState(**row) if row else None

    def ensure_rotation_state(self, api_name: str, monthly_limit: int):
        """Seed a row for a configured API; an existing row keeps its usage but takes the new limit"""
        table = self.db["api_rotation"]
        table.insert(
            RotationState(api_name=api_name, monthly_limit=monthly_limit).model_dump(mode="json"),
            ignore=True,
        )
        table.update(api_name, {"monthly_limit": monthly_limit})

    def update_rotation_state(self, state: RotationState):
        self.db["api_rotation"].update(state.api_name, state.model_dump(mode="json"))

    def list_rotation_states(self) -> list[RotationState]:
        return [RotationState(**row) for row in self.db["api_rotation"].rows_where(order_by="api_name")]
