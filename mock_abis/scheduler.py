#mock_abis/scheduler.py
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler

from mock_abis.channel import EncodingError, OutboundChannel
from mock_abis.constants import MessageType
from mock_abis.logger import logger


@dataclass
class DeliveryTask:
    response: Any
    delay: int = 0
    message_type: MessageType = MessageType.TEXT
    run_date: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class DeliveryScheduler:
    """
    Delivers responses to the outbound channel after a delay.

    Each delivery is a one-shot APScheduler date job, run on the scheduler's
    worker pool. Scheduling only adds the job, so a delivery never runs on the
    caller's thread, even with a zero delay. Failed deliveries are logged and
    dropped. Jobs still waiting when the scheduler stops are abandoned.
    """

    def __init__(self, channel: OutboundChannel, scheduler: Optional[BackgroundScheduler] = None):
        self.channel = channel
        self.scheduler = scheduler or self._create_scheduler()

    def _create_scheduler(self) -> BackgroundScheduler:
        return BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(10)},
            job_defaults={"coalesce": False, "max_instances": 1},
            timezone="UTC",
        )

    def start(self) -> None:
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Delivery scheduler started")

    def stop(self) -> None:
        abandoned = self.pending()
        self.scheduler.remove_all_jobs()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info(f"Delivery scheduler stopped, {abandoned} pending deliveries abandoned")

    def schedule(self, response, delay_seconds: int, message_type: MessageType = MessageType.TEXT) -> DeliveryTask:
        delay_seconds = max(0, int(delay_seconds or 0))
        task = DeliveryTask(
            response=response,
            delay=delay_seconds,
            message_type=MessageType(message_type),
            run_date=datetime.now(timezone.utc) + timedelta(seconds=delay_seconds),
        )
        self.scheduler.add_job(
            self._deliver,
            "date",
            run_date=task.run_date,
            args=[task],
            misfire_grace_time=None,
        )
        logger.info(f"Adding timed task with timer as {delay_seconds} in seconds")
        return task

    def pending(self) -> int:
        return len(self.scheduler.get_jobs())

    def _deliver(self, task: DeliveryTask) -> None:
        try:
            self.channel.send_to_queue(task.response, task.message_type)
            logger.info(f"Scheduled job completed: MsgType {int(task.message_type)}")
        except EncodingError as e:
            logger.error(f"Dropping delivery, encoding failed: {e}")
        except Exception as e:
            logger.exception(f"Dropping delivery, channel write failed: {e}")
