"""
Motor de scheduling para sincronizaciones automáticas VirtueMart → JTL.

Los trabajos programados viven en memoria. Un loop asíncrono revisa cada
``SCHEDULER_TICK_SECONDS`` qué trabajos han vencido y lanza para cada uno
una sincronización secuencial de sus tiendas.
"""

import asyncio
import logging
import re
import uuid
from datetime import datetime, time, timedelta, timezone
from typing import Any, Callable, Dict, List, Literal, Optional, Sequence

import pytz
from pydantic import BaseModel, Field

from app.core.config import Settings, get_settings
from app.domain.models import ShopConfig
from app.services.sync import SyncEngine, SyncRuntime, run_multi_sync
from app.utils.error_handler import NotFoundException, SyncInProgressException, ValidationException

logger = logging.getLogger(__name__)

TIME_OF_DAY_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")

ShopsProvider = Callable[[], Sequence[ShopConfig]]


class ScheduledJob(BaseModel):
    """Trabajo de sincronización programada."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str = ""
    schedule_type: Literal["daily", "hourly", "minutes"] = "daily"
    time_of_day: Optional[str] = None
    interval_minutes: Optional[int] = None
    shop_ids: List[str] = Field(default_factory=list)
    enabled: bool = True
    last_run: Optional[datetime] = None
    next_run: Optional[datetime] = None


def parse_time_of_day(value: Optional[str]) -> time:
    """
    Convierte "HH:MM" en ``time``.

    Raises:
        ValidationException: Si el formato o el rango no son válidos
    """
    match = TIME_OF_DAY_PATTERN.match(value or "")
    if not match:
        raise ValidationException(
            f"Invalid time of day: {value}", field="time_of_day", invalid_value=value, expected_format="HH:MM"
        )
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValidationException(
            f"Time of day out of range: {value}", field="time_of_day", invalid_value=value, expected_format="HH:MM"
        )
    return time(hour, minute)


def validate_job(job: ScheduledJob) -> None:
    """
    Valida la definición de un trabajo.

    Raises:
        ValidationException: Si falta la hora, el intervalo o las tiendas
    """
    if not job.shop_ids:
        raise ValidationException("Scheduled job must include at least one shop", field="shop_ids")
    if job.schedule_type == "daily":
        parse_time_of_day(job.time_of_day)
    elif job.schedule_type == "minutes":
        if job.interval_minutes is None or job.interval_minutes <= 0:
            raise ValidationException(
                "Interval must be greater than zero minutes",
                field="interval_minutes",
                invalid_value=job.interval_minutes,
            )


def compute_next_run(job: ScheduledJob, now: datetime, tz_name: str = "Europe/Berlin") -> datetime:
    """
    Calcula la próxima ejecución de un trabajo.

    Args:
        job: Trabajo programado
        now: Instante actual (con zona horaria)
        tz_name: Zona horaria en la que se interpreta la hora diaria

    Returns:
        datetime: Próxima ejecución en UTC
    """
    validate_job(job)
    now = now.astimezone(timezone.utc)

    if job.schedule_type == "hourly":
        return now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)

    if job.schedule_type == "minutes":
        return now + timedelta(minutes=job.interval_minutes)

    tz = pytz.timezone(tz_name)
    target = parse_time_of_day(job.time_of_day)
    local_now = now.astimezone(tz)
    candidate = tz.localize(datetime.combine(local_now.date(), target))
    if candidate <= local_now:
        candidate = tz.localize(datetime.combine(local_now.date() + timedelta(days=1), target))
    return candidate.astimezone(timezone.utc)


class SyncScheduler:
    """
    Scheduler de sincronizaciones por tienda.
    """

    def __init__(
        self,
        engine: SyncEngine,
        runtime: SyncRuntime,
        shops_provider: ShopsProvider,
        settings: Optional[Settings] = None,
    ):
        self.engine = engine
        self.runtime = runtime
        self.shops_provider = shops_provider
        self.settings = settings or get_settings()
        self._jobs: Dict[str, ScheduledJob] = {}
        self._job_tasks: Dict[str, asyncio.Task] = {}
        self._task: Optional[asyncio.Task] = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """
        Inicia el loop del scheduler.
        """
        if self._running:
            logger.warning("Scheduler ya está ejecutándose")
            return

        logger.info(f"🕒 Iniciando scheduler (tick cada {self.settings.SCHEDULER_TICK_SECONDS}s)")
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("✅ Scheduler iniciado correctamente")

    async def stop(self) -> None:
        """
        Detiene el loop y cancela las ejecuciones en curso.
        """
        if not self._running:
            logger.info("Scheduler no está ejecutándose")
            return

        logger.info("🛑 Deteniendo scheduler")
        self._running = False

        tasks = [t for t in [self._task, *self._job_tasks.values()] if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

        self._task = None
        self._job_tasks.clear()
        logger.info("✅ Scheduler detenido correctamente")

    async def _loop(self) -> None:
        """
        Loop principal que lanza los trabajos vencidos.
        """
        while self._running:
            try:
                await self.tick()
            except Exception as e:
                logger.error(f"Error en loop del scheduler: {e}", exc_info=True)
            await asyncio.sleep(self.settings.SCHEDULER_TICK_SECONDS)

    async def tick(self, now: Optional[datetime] = None) -> List[str]:
        """
        Lanza los trabajos habilitados cuya próxima ejecución ha vencido.

        Returns:
            List[str]: IDs de los trabajos lanzados
        """
        now = now or datetime.now(timezone.utc)
        launched = []
        for job in list(self._jobs.values()):
            if not job.enabled or job.next_run is None or job.next_run > now:
                continue
            if self._is_job_running(job.id):
                logger.info(f"⏭️ Trabajo '{job.name or job.id}' sigue en ejecución, se omite este tick")
                continue
            self._launch(job, now)
            launched.append(job.id)
        return launched

    def _is_job_running(self, job_id: str) -> bool:
        task = self._job_tasks.get(job_id)
        return task is not None and not task.done()

    def _launch(self, job: ScheduledJob, now: datetime) -> asyncio.Task:
        logger.info(f"⏰ Ejecutando trabajo programado '{job.name or job.id}' para tiendas {job.shop_ids}")
        job.last_run = now
        self._schedule(job, now)
        task = asyncio.create_task(
            run_multi_sync(self.engine, list(self.shops_provider()), list(job.shop_ids), job_id=job.id)
        )
        self._job_tasks[job.id] = task
        return task

    def _schedule(self, job: ScheduledJob, now: Optional[datetime] = None) -> None:
        """Recalcula ``next_run`` y lo publica en las estadísticas de cada tienda."""
        now = now or datetime.now(timezone.utc)
        job.next_run = compute_next_run(job, now, self.settings.SCHEDULER_TIMEZONE) if job.enabled else None
        for shop_id in job.shop_ids:
            self.runtime.set_next_scheduled_run(shop_id, self._next_run_for_shop(shop_id))

    def _next_run_for_shop(self, shop_id: str) -> Optional[datetime]:
        runs = [j.next_run for j in self._jobs.values() if shop_id in j.shop_ids and j.next_run is not None]
        return min(runs) if runs else None

    def add_job(self, job: ScheduledJob) -> ScheduledJob:
        """
        Registra un trabajo y calcula su próxima ejecución.

        Raises:
            ValidationException: Si el trabajo no es válido
        """
        validate_job(job)
        self._jobs[job.id] = job
        self._schedule(job)
        logger.info(f"📅 Trabajo '{job.name or job.id}' programado, próxima ejecución: {job.next_run}")
        return job

    def get_job(self, job_id: str) -> ScheduledJob:
        job = self._jobs.get(job_id)
        if job is None:
            raise NotFoundException(f"Scheduled job '{job_id}' not found", resource="scheduled_job", identifier=job_id)
        return job

    def list_jobs(self) -> List[ScheduledJob]:
        return list(self._jobs.values())

    def remove_job(self, job_id: str) -> ScheduledJob:
        """
        Elimina un trabajo programado. Una ejecución en curso termina normalmente.

        Raises:
            NotFoundException: Si el trabajo no existe
        """
        job = self.get_job(job_id)
        del self._jobs[job_id]
        for shop_id in job.shop_ids:
            self.runtime.set_next_scheduled_run(shop_id, self._next_run_for_shop(shop_id))
        logger.info(f"🗑️ Trabajo '{job.name or job.id}' eliminado")
        return job

    def cancel_jobs_for_shop(self, shop_id: Optional[str] = None) -> int:
        """
        Quita una tienda de todos los trabajos (o todos los trabajos si no se indica).

        Los trabajos que quedan sin tiendas se eliminan.

        Returns:
            int: Número de trabajos eliminados
        """
        removed = 0
        for job in list(self._jobs.values()):
            if shop_id is None or job.shop_ids == [shop_id]:
                self.remove_job(job.id)
                removed += 1
            elif shop_id in job.shop_ids:
                job.shop_ids = [s for s in job.shop_ids if s != shop_id]
                self.runtime.set_next_scheduled_run(shop_id, self._next_run_for_shop(shop_id))
        return removed

    def run_job_now(self, job_id: str) -> asyncio.Task:
        """
        Lanza un trabajo inmediatamente sin esperar a su próxima ejecución.

        Raises:
            NotFoundException: Si el trabajo no existe
            SyncInProgressException: Si el trabajo sigue en ejecución
        """
        job = self.get_job(job_id)
        if self._is_job_running(job_id):
            raise SyncInProgressException(
                f"Scheduled job '{job_id}' is already running", shop_id=",".join(job.shop_ids)
            )
        return self._launch(job, datetime.now(timezone.utc))

    def get_status(self) -> Dict[str, Any]:
        """
        Obtiene el estado actual del scheduler.

        Returns:
            Dict: Información del estado
        """
        return {
            "running": self._running,
            "task_active": self._task is not None and not self._task.done(),
            "tick_seconds": self.settings.SCHEDULER_TICK_SECONDS,
            "timezone": self.settings.SCHEDULER_TIMEZONE,
            "jobs": len(self._jobs),
            "running_jobs": [job_id for job_id in self._job_tasks if self._is_job_running(job_id)],
            "running_shops": self.runtime.running_shops(),
        }
