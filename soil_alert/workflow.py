"""
Soil moisture alert workflow.

fetch reading -> look up the farmer -> compare with the threshold -> SMS.

Every stage fails open: a missing reading or contact short-circuits the
run and is reported as a CheckResult outcome. Nothing is raised to the
caller, so the scheduler keeps running regardless of what one check hits.
"""

import logging
import threading
from typing import Callable, Optional, Protocol

from sqlalchemy.orm import Session

from soil_alert.errors import DeliveryError, FetchError, PersistenceError
from soil_alert.metrics import record_check_outcome, record_sms
from soil_alert.schemas import CheckOutcome, CheckResult
from soil_alert.sensor import Reading
from soil_alert.storage import get_contact, get_latest_phone_number

logger = logging.getLogger(__name__)

ALERT_TEMPLATE = (
    "🚨 Alert! Soil moisture is too low ({reading}%). "
    "Please irrigate your crops immediately."
)
MANUAL_TEMPLATE = (
    "📢 Manual SMS Triggered! Current Soil Moisture: {reading}%. "
    "Please monitor your crops accordingly."
)


class MoistureSource(Protocol):
    def fetch_latest_moisture(self) -> Reading: ...


class MessageSender(Protocol):
    def send_message(self, to: str, body: str) -> str: ...


class AlertWorkflow:
    """
    Runs moisture checks against one sensor, contact store and notifier.

    Checks are serialized: at most one run_check/trigger_manual is in
    flight, so concurrent triggers never interleave SMS sends.
    """

    def __init__(
        self,
        sensor: MoistureSource,
        notifier: MessageSender,
        session_factory: Callable[[], Session],
        threshold: float = 30,
    ):
        self.sensor = sensor
        self.notifier = notifier
        self.session_factory = session_factory
        self.threshold = threshold
        self._lock = threading.Lock()

    def run_check(self, trigger: str = "scheduled") -> CheckResult:
        """Alert the farmer when the current reading is below the threshold."""
        with self._lock:
            result = self._run_check(trigger)
        record_check_outcome(trigger, result.outcome.value)
        return result

    def trigger_manual(self) -> CheckResult:
        """Send the current reading to the farmer regardless of the threshold."""
        with self._lock:
            result = self._trigger_manual()
        record_check_outcome("manual", result.outcome.value)
        return result

    def _run_check(self, trigger: str) -> CheckResult:
        logger.info(f"Running soil moisture check ({trigger})")

        try:
            reading = self.sensor.fetch_latest_moisture()
        except FetchError as e:
            logger.error(f"Error fetching soil moisture data: {e}")
            return CheckResult(outcome=CheckOutcome.FETCH_FAILED, trigger=trigger, error=str(e))

        try:
            phone_number = self._latest_phone_number()
        except PersistenceError as e:
            logger.error(f"Error looking up farmer number: {e}")
            return CheckResult(
                outcome=CheckOutcome.STORE_FAILED, trigger=trigger, reading=reading, error=str(e)
            )

        if not phone_number:
            logger.warning("Farmer number is not set. Cannot send SMS.")
            return CheckResult(outcome=CheckOutcome.NO_CONTACT, trigger=trigger, reading=reading)

        if reading < self.threshold:
            body = ALERT_TEMPLATE.format(reading=reading)
            return self._send(CheckOutcome.ALERT_SENT, trigger, reading, phone_number, body)

        logger.info(f"Soil moisture {reading}% is not below threshold; no SMS sent")
        return CheckResult(
            outcome=CheckOutcome.NO_ACTION, trigger=trigger, reading=reading, phone_number=phone_number
        )

    def _trigger_manual(self) -> CheckResult:
        trigger = "manual"
        try:
            with self.session_factory() as db:
                contact = get_contact(db)
                phone_number = contact.phone_number if contact else None
        except PersistenceError as e:
            logger.error(f"Error looking up farmer number: {e}")
            return CheckResult(outcome=CheckOutcome.STORE_FAILED, trigger=trigger, error=str(e))

        if not phone_number:
            logger.warning("Farmer number is not set. Cannot send manual SMS.")
            return CheckResult(outcome=CheckOutcome.NO_CONTACT, trigger=trigger)

        try:
            reading = self.sensor.fetch_latest_moisture()
        except FetchError as e:
            logger.error(f"Error fetching soil moisture for manual SMS: {e}")
            return CheckResult(
                outcome=CheckOutcome.FETCH_FAILED, trigger=trigger, phone_number=phone_number, error=str(e)
            )

        body = MANUAL_TEMPLATE.format(reading=reading)
        return self._send(CheckOutcome.MANUAL_SENT, trigger, reading, phone_number, body)

    def _latest_phone_number(self) -> Optional[str]:
        with self.session_factory() as db:
            return get_latest_phone_number(db)

    def _send(
        self,
        outcome: CheckOutcome,
        trigger: str,
        reading: Reading,
        phone_number: str,
        body: str,
    ) -> CheckResult:
        try:
            sid = self.notifier.send_message(phone_number, body)
        except DeliveryError as e:
            logger.error(f"Error sending SMS: {e}")
            record_sms(delivered=False)
            return CheckResult(
                outcome=CheckOutcome.DELIVERY_FAILED,
                trigger=trigger,
                reading=reading,
                phone_number=phone_number,
                error=str(e),
            )

        record_sms(delivered=True)
        return CheckResult(
            outcome=outcome, trigger=trigger, reading=reading, phone_number=phone_number, message_sid=sid
        )
