"""Tests unitarios para el scheduler de sincronizaciones."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.core.scheduler import ScheduledJob, SyncScheduler, compute_next_run, parse_time_of_day
from app.services.sync import SyncRuntime
from app.utils.error_handler import NotFoundException, SyncInProgressException, ValidationException


@pytest.fixture
def runtime():
    return SyncRuntime()


@pytest.fixture
def scheduler(runtime, fast_settings, shop):
    return SyncScheduler(engine=MagicMock(), runtime=runtime, shops_provider=lambda: [shop], settings=fast_settings)


class TestComputeNextRun:
    """Tests para el cálculo de la próxima ejecución."""

    def test_daily_later_today(self):
        """Debe programar hoy si la hora aún no ha pasado (hora de Berlín)."""
        job = ScheduledJob(schedule_type="daily", time_of_day="08:00", shop_ids=["shop-de"])
        now = datetime(2024, 1, 15, 5, 0, tzinfo=timezone.utc)

        assert compute_next_run(job, now) == datetime(2024, 1, 15, 7, 0, tzinfo=timezone.utc)

    def test_daily_tomorrow(self):
        """Debe programar mañana si la hora ya pasó."""
        job = ScheduledJob(schedule_type="daily", time_of_day="08:00", shop_ids=["shop-de"])
        now = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)

        assert compute_next_run(job, now) == datetime(2024, 1, 16, 7, 0, tzinfo=timezone.utc)

    def test_daily_summer_time(self):
        """En horario de verano Berlín está a UTC+2."""
        job = ScheduledJob(schedule_type="daily", time_of_day="08:00", shop_ids=["shop-de"])
        now = datetime(2024, 7, 1, 0, 0, tzinfo=timezone.utc)

        assert compute_next_run(job, now) == datetime(2024, 7, 1, 6, 0, tzinfo=timezone.utc)

    def test_hourly(self):
        """Debe programar al inicio de la siguiente hora."""
        job = ScheduledJob(schedule_type="hourly", shop_ids=["shop-de"])
        now = datetime(2024, 1, 15, 9, 42, 10, tzinfo=timezone.utc)

        assert compute_next_run(job, now) == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)

    def test_minutes(self):
        """Debe sumar el intervalo en minutos."""
        job = ScheduledJob(schedule_type="minutes", interval_minutes=15, shop_ids=["shop-de"])
        now = datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)

        assert compute_next_run(job, now) == now + timedelta(minutes=15)


class TestValidation:
    """Tests para la validación de trabajos."""

    @pytest.mark.parametrize("value", ["8", "25:00", "08:60", "", None, "ab:cd"])
    def test_invalid_time_of_day(self, value):
        """Debe rechazar horas con formato inválido."""
        with pytest.raises(ValidationException):
            parse_time_of_day(value)

    def test_job_without_shops(self, scheduler):
        """Un trabajo sin tiendas no es válido."""
        with pytest.raises(ValidationException):
            scheduler.add_job(ScheduledJob(schedule_type="hourly"))

    def test_minutes_without_interval(self, scheduler):
        """Un trabajo por minutos necesita un intervalo positivo."""
        with pytest.raises(ValidationException):
            scheduler.add_job(ScheduledJob(schedule_type="minutes", interval_minutes=0, shop_ids=["shop-de"]))


class TestSyncScheduler:
    """Tests para el registro y la ejecución de trabajos."""

    def test_add_job_publishes_next_run(self, scheduler, runtime):
        """Debe calcular next_run y publicarlo en las estadísticas de la tienda."""
        job = scheduler.add_job(ScheduledJob(schedule_type="hourly", shop_ids=["shop-de"]))

        assert job.next_run is not None
        assert runtime.get_shop_stats("shop-de").next_scheduled_run == job.next_run

    def test_remove_job_clears_next_run(self, scheduler, runtime):
        """Eliminar el único trabajo de una tienda debe limpiar su próxima ejecución."""
        job = scheduler.add_job(ScheduledJob(schedule_type="hourly", shop_ids=["shop-de"]))

        scheduler.remove_job(job.id)

        assert scheduler.list_jobs() == []
        assert runtime.get_shop_stats("shop-de").next_scheduled_run is None

    def test_unknown_job(self, scheduler):
        """Debe lanzar NotFoundException para trabajos desconocidos."""
        with pytest.raises(NotFoundException):
            scheduler.get_job("nope")

    def test_cancel_jobs_for_shop(self, scheduler):
        """Debe quitar la tienda y eliminar los trabajos que quedan vacíos."""
        scheduler.add_job(ScheduledJob(schedule_type="hourly", shop_ids=["shop-de"]))
        shared = scheduler.add_job(ScheduledJob(schedule_type="hourly", shop_ids=["shop-de", "shop-at"]))

        removed = scheduler.cancel_jobs_for_shop("shop-de")

        assert removed == 1
        assert [j.id for j in scheduler.list_jobs()] == [shared.id]
        assert shared.shop_ids == ["shop-at"]

    @pytest.mark.asyncio
    async def test_tick_launches_due_jobs(self, scheduler, shop):
        """Debe lanzar solo los trabajos vencidos y reprogramarlos."""
        due = scheduler.add_job(ScheduledJob(schedule_type="minutes", interval_minutes=5, shop_ids=[shop.id]))
        later = scheduler.add_job(ScheduledJob(schedule_type="minutes", interval_minutes=60, shop_ids=[shop.id]))
        now = due.next_run + timedelta(seconds=1)

        with patch("app.core.scheduler.run_multi_sync", new=AsyncMock()) as run:
            launched = await scheduler.tick(now)
            await asyncio.sleep(0)

        assert launched == [due.id]
        assert later.id not in launched
        assert due.last_run == now
        assert due.next_run == now + timedelta(minutes=5)
        run.assert_awaited_once()
        assert run.await_args.kwargs["job_id"] == due.id

    @pytest.mark.asyncio
    async def test_disabled_jobs_are_ignored(self, scheduler, shop):
        """Los trabajos deshabilitados no se ejecutan."""
        scheduler.add_job(ScheduledJob(schedule_type="hourly", shop_ids=[shop.id], enabled=False))

        with patch("app.core.scheduler.run_multi_sync", new=AsyncMock()) as run:
            launched = await scheduler.tick(datetime.now(timezone.utc) + timedelta(days=1))

        assert launched == []
        run.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_run_job_now_rejects_running_job(self, scheduler, shop):
        """No debe lanzar un trabajo que sigue en ejecución."""
        job = scheduler.add_job(ScheduledJob(schedule_type="hourly", shop_ids=[shop.id]))
        release = asyncio.Event()

        async def slow_run(*args, **kwargs):
            await release.wait()

        with patch("app.core.scheduler.run_multi_sync", new=slow_run):
            scheduler.run_job_now(job.id)
            with pytest.raises(SyncInProgressException):
                scheduler.run_job_now(job.id)
            assert scheduler.get_status()["running_jobs"] == [job.id]
            release.set()
            await asyncio.sleep(0.01)

    @pytest.mark.asyncio
    async def test_start_and_stop(self, scheduler):
        """Debe arrancar y detener el loop."""
        await scheduler.start()
        assert scheduler.get_status()["running"] is True
        assert scheduler.get_status()["task_active"] is True

        await scheduler.stop()
        assert scheduler.get_status()["running"] is False
        assert scheduler.get_status()["task_active"] is False
