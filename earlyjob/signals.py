import logging
import time
from datetime import datetime
from typing import Callable

from earlyjob.db import JobStore
from earlyjob.dedup import resolve_company
from earlyjob.errors import DuplicateRecordError, IngestionError
from earlyjob.models import Alert, HiringSignal, SignalEvent, SignalReport, utcnow

logger = logging.getLogger(__name__)


def build_signal_alerts(signal: HiringSignal, user_ids: list[str], sent_at: datetime) -> list[Alert]:
    return [
        Alert(
            user_id=user_id,
            company_id=signal.company_id,
            alert_type="hiring_signal",
            title=signal.title,
            message=signal.description,
            data={
                "signal_type": signal.signal_type,
                "confidence_score": signal.confidence_score,
                "source_url": signal.source_url,
                "metadata": signal.metadata,
            },
            sent_at=sent_at,
        )
        for user_id in user_ids
    ]


class SignalIngestor:
    """Persists company-level hiring signals and alerts the users tracking them"""

    def __init__(self, store: JobStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def ingest(self, events: list[SignalEvent]) -> SignalReport:
        started = time.monotonic()
        timestamp = self.clock()
        try:
            report = self._ingest(events, timestamp)
        except Exception as e:
            logger.exception("Fatal error in hiring signal ingestion")
            return SignalReport(success=False, timestamp=timestamp, error=str(e))

        report.duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "Signal ingestion done: %d new, %d skipped, %d alerts, %d errors",
            report.processed,
            report.skipped,
            report.alerts_created,
            len(report.errors),
        )
        return report

    def _ingest(self, events: list[SignalEvent], timestamp: datetime) -> SignalReport:
        report = SignalReport(success=True, timestamp=timestamp)
        logger.info("Processing %d signals", len(events))

        for event in events:
            try:
                signal = self._persist(event)
            except DuplicateRecordError:
                signal = None
            except IngestionError as e:
                logger.error("Error processing signal for %s: %s", event.company_name, e)
                report.errors.append(f"{event.company_name}: {e}")
                continue

            if signal is None:
                logger.info("Signal already exists: %s", event.title)
                report.skipped += 1
                continue

            report.processed += 1
            try:
                report.alerts_created += self._fan_out(signal)
            except IngestionError as e:
                logger.error("Error creating alerts for %s: %s", event.company_name, e)
                report.errors.append(f"{event.company_name}: alerts failed: {e}")

        return report

    def _persist(self, event: SignalEvent):
        company_id = resolve_company(self.store, event.company_name)
        if self.store.find_signal_by_company_and_title(company_id, event.title):
            return None

        signal = HiringSignal(
            company_id=company_id,
            signal_type=event.signal_type,
            title=event.title,
            description=event.description,
            confidence_score=event.confidence_score if event.confidence_score is not None else 5,
            source_url=event.source_url,
            detected_at=event.detected_at or self.clock(),
            metadata=event.metadata,
        )
        signal.id = self.store.insert_signal(signal)
        logger.info("Inserted signal: %s", signal.title)
        return signal

    def _fan_out(self, signal: HiringSignal) -> int:
        user_ids = self.store.find_users_tracking_company(signal.company_id)
        if not user_ids:
            logger.info("No users tracking company %s", signal.company_id)
            return 0

        alerts = build_signal_alerts(signal, user_ids, self.clock())
        self.store.insert_alerts(alerts)
        return len(alerts)
