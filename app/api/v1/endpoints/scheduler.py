"""
Endpoints para gestionar sincronizaciones programadas.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, status

from app.api.dependencies import get_scheduler, get_shop_registry
from app.api.v1.schemas.sync_schemas import ScheduledJobCreate, SchedulerStatusResponse
from app.core.scheduler import ScheduledJob, SyncScheduler
from app.utils.error_handler import NotFoundException
from app.utils.shop_loader import ShopRegistry

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/jobs", response_model=List[ScheduledJob], summary="Listar trabajos programados")
async def list_jobs(scheduler: SyncScheduler = Depends(get_scheduler)):
    return scheduler.list_jobs()


@router.post(
    "/jobs",
    response_model=ScheduledJob,
    status_code=status.HTTP_201_CREATED,
    summary="Crear trabajo programado",
)
async def create_job(
    job_request: ScheduledJobCreate,
    scheduler: SyncScheduler = Depends(get_scheduler),
    shops: ShopRegistry = Depends(get_shop_registry),
):
    """
    Registra un trabajo y calcula su próxima ejecución.
    """
    unknown = [shop_id for shop_id in job_request.shop_ids if shops.find(shop_id) is None]
    if unknown:
        raise NotFoundException(f"Unknown shops: {unknown}", resource="shop", identifier=unknown)

    job = ScheduledJob(**job_request.model_dump())
    return scheduler.add_job(job)


@router.delete("/jobs/{job_id}", response_model=ScheduledJob, summary="Eliminar trabajo programado")
async def delete_job(job_id: str, scheduler: SyncScheduler = Depends(get_scheduler)):
    return scheduler.remove_job(job_id)


@router.post("/jobs/{job_id}/run", status_code=status.HTTP_202_ACCEPTED, summary="Ejecutar trabajo ahora")
async def run_job(job_id: str, scheduler: SyncScheduler = Depends(get_scheduler)):
    scheduler.run_job_now(job_id)
    return {"success": True, "job_id": job_id}


@router.get("/status", response_model=SchedulerStatusResponse, summary="Estado del scheduler")
async def scheduler_status(scheduler: SyncScheduler = Depends(get_scheduler)):
    return scheduler.get_status()
