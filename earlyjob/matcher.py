import logging
from datetime import datetime
from typing import Callable

from earlyjob.db import JobStore
from earlyjob.models import Alert, JobPost, UserPreference, utcnow

logger = logging.getLogger(__name__)


def passes_keyword_filter(job: JobPost, preference: UserPreference) -> bool:
    keywords = [k.strip().lower() for k in preference.keywords if k.strip()]
    if not keywords:
        return True

    text = f"{job.title} {job.description}".lower()
    return any(keyword in text for keyword in keywords)


def passes_remote_filter(job: JobPost, preference: UserPreference) -> bool:
    if preference.remote_only:
        return job.is_remote
    return True


def passes_salary_filter(job: JobPost, preference: UserPreference) -> bool:
    """Only excludes when both the user minimum and the job maximum are known"""
    if preference.salary_min and job.salary_max is not None:
        return job.salary_max >= preference.salary_min
    return True


def matches(job: JobPost, preference: UserPreference) -> bool:
    """Returns True if job passes all filters"""
    if not passes_keyword_filter(job, preference):
        return False
    if not passes_remote_filter(job, preference):
        return False
    if not passes_salary_filter(job, preference):
        return False
    return True


def build_job_alert(job: JobPost, user_id: str, sent_at: datetime) -> Alert:
    where = job.location or "location not specified"
    return Alert(
        user_id=user_id,
        company_id=job.company_id,
        alert_type="job_opportunity",
        title=f"New job: {job.title}",
        message=f"{job.title} at {job.company_name} ({where})",
        data={
            "job_id": job.id,
            "source_type": job.source_type,
            "source_url": job.source_url,
            "location": job.location,
            "is_remote": job.is_remote,
            "remote_type": job.remote_type,
            "salary_min": job.salary_min,
            "salary_max": job.salary_max,
            "salary_currency": job.salary_currency,
        },
        sent_at=sent_at,
    )


class PreferenceMatcher:
    """Turns newly inserted jobs into job_opportunity alerts"""

    def __init__(self, store: JobStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def match(self, job_ids: list[str]) -> list[Alert]:
        if not job_ids:
            return []

        preferences = self.store.find_active_profiles_with_preferences()
        if not preferences:
            logger.info("No users with search preferences, nothing to match")
            return []

        jobs = self.store.find_jobs_by_ids(job_ids)
        sent_at = self.clock()
        alerts = [
            build_job_alert(job, preference.user_id, sent_at)
            for preference in preferences
            for job in jobs
            if matches(job, preference)
        ]

        # one batch write for the whole run
        self.store.insert_alerts(alerts)
        logger.info(
            "Matched %d jobs against %d users: %d alerts",
            len(jobs),
            len(preferences),
            len(alerts),
        )
        return alerts
