import logging

from pydantic import BaseModel

from earlyjob.db import JobStore
from earlyjob.errors import DuplicateRecordError, PersistenceError
from earlyjob.models import Company, JobPost

logger = logging.getLogger(__name__)


class InsertResult(BaseModel):
    inserted: int = 0
    skipped: int = 0
    inserted_ids: list[str] = []


def resolve_company(store: JobStore, name: str) -> str:
    """Find a company by name (case-insensitive, fuzzy) or create a minimal one"""
    existing = store.find_company_by_name(name)
    if existing:
        return existing.id

    company = Company(
        name=name.strip(),
        industry="Technology",
        description=f"Company profile for {name.strip()}",
    )
    try:
        company_id = store.insert_company(company)
    except DuplicateRecordError:
        # another writer created it between lookup and insert
        existing = store.find_company_by_name(name)
        if existing is None:
            raise
        return existing.id

    logger.info("Created company %s (%s)", company.name, company_id)
    return company_id


def insert_jobs(store: JobStore, jobs: list[JobPost]) -> InsertResult:
    """Persist jobs not already present by external_id or dedup_hash.

    Existing records always win; nothing is overwritten. A failure on one
    job is counted as a skip and does not affect the others.
    """
    result = InsertResult()

    for job in jobs:
        try:
            if store.find_job_by_external_id_or_hash(job.external_id, job.dedup_hash):
                result.skipped += 1
                continue

            job.company_id = resolve_company(store, job.company_name)
            job_id = store.insert_job(job)
        except DuplicateRecordError:
            result.skipped += 1
            continue
        except PersistenceError as e:
            logger.error("Failed to insert %s - %s: %s", job.company_name, job.title, e)
            result.skipped += 1
            continue

        result.inserted += 1
        result.inserted_ids.append(job_id)

    logger.info("Inserted %d jobs, skipped %d", result.inserted, result.skipped)
    return result
