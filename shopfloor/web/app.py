"""FastAPI-based web interface for the production tracking service."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from ..config import Settings, configure_logging
from ..domain import Batch, PartProgress, ScanEvent, Station
from ..errors import (
    EmptyBatch,
    InvalidBatchTransition,
    InvalidStation,
    OrderAlreadyBatched,
    PartialBatchStartFailure,
)
from ..poller import BatchCompletionPoller
from ..repository import DuplicateRecordError, RecordNotFoundError
from ..services import OrderSummary, ShopFloorService
from ..storage import ShopFloorDatabase

logger = logging.getLogger(__name__)


class OrderIn(BaseModel):
    order_number: str
    customer_name: str = ""
    part_ids: List[str]
    order_id: Optional[str] = None


class ScanIn(BaseModel):
    part_id: str
    station: str
    scanned_by: str = "system"
    order_id: Optional[str] = None
    notes: Optional[str] = None
    part_name: str = ""
    scanned_by_name: str = ""
    barcode: str = ""


class BatchIn(BaseModel):
    order_ids: List[str] = Field(default_factory=list)
    name: Optional[str] = None


class BatchStartIn(BaseModel):
    order_ids: Optional[List[str]] = None


def station_out(station: Optional[Station]) -> Optional[Dict[str, Any]]:
    if station is None:
        return None
    return asdict(station)


def scan_out(event: ScanEvent) -> Dict[str, Any]:
    payload = asdict(event)
    payload["timestamp"] = event.timestamp.isoformat()
    return payload


def progress_out(progress: PartProgress) -> Dict[str, Any]:
    return {
        "part_id": progress.part_id,
        "current_station": station_out(progress.current_station),
        "last_scan": progress.last_scan.isoformat() if progress.last_scan else None,
        "history": [scan_out(event) for event in progress.history],
    }


def order_out(summary: OrderSummary) -> Dict[str, Any]:
    order = summary.order
    return {
        "id": order.id,
        "order_number": order.order_number,
        "customer_name": order.customer_name,
        "part_ids": list(order.part_ids),
        "panel_count": order.panel_count,
        "lifecycle_status": order.lifecycle_status,
        "status": summary.status,
        "completed_parts": summary.completed_parts,
        "batch_id": summary.batch_id,
        "sent_to_production_at": order.sent_to_production_at.isoformat(),
    }


def batch_out(batch: Batch) -> Dict[str, Any]:
    return {
        "id": batch.id,
        "name": batch.name,
        "status": batch.status.value,
        "progress": batch.progress,
        "orders": [asdict(order) for order in batch.orders],
        "total_panels": batch.total_panels,
        "completed_panels": batch.completed_panels,
        "created_at": batch.created_at.isoformat(),
        "started_at": batch.started_at.isoformat() if batch.started_at else None,
        "completed_at": batch.completed_at.isoformat() if batch.completed_at else None,
        "skipped_order_ids": list(batch.skipped_order_ids),
    }


def error_response(status_code: int, exc: Exception, **extra: Any) -> JSONResponse:
    content = {"error": str(exc), "type": exc.__class__.__name__}
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


def create_app(
    settings: Optional[Settings] = None,
    *,
    service: Optional[ShopFloorService] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    database: Optional[ShopFloorDatabase] = None
    if service is None:
        database = ShopFloorDatabase(settings.database_path)
        service = ShopFloorService(
            settings.station_registry(),
            scan_log=database.scan_events,
            order_repo=database.orders,
            batch_repo=database.batches,
        )
    if settings.seed_demo_data:
        ensure_demo_data(service)
    poller = BatchCompletionPoller(service.batches, settings.poll_interval_seconds)

    app = FastAPI(title="Shop Floor Production Tracking")
    app.state.service = service
    app.state.database = database
    app.state.poller = poller

    @app.on_event("startup")
    async def startup_event() -> None:
        if settings.start_poller:
            poller.start()

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        poller.stop()
        if database is not None:
            database.close()

    # ------------------------------------------------------------------
    # Error mapping
    # ------------------------------------------------------------------
    @app.exception_handler(InvalidStation)
    async def invalid_station_handler(request: Request, exc: InvalidStation):
        return error_response(400, exc, station=str(exc.station))

    @app.exception_handler(OrderAlreadyBatched)
    async def already_batched_handler(request: Request, exc: OrderAlreadyBatched):
        return error_response(409, exc, order_ids=list(exc.order_ids))

    @app.exception_handler(EmptyBatch)
    async def empty_batch_handler(request: Request, exc: EmptyBatch):
        return error_response(400, exc)

    @app.exception_handler(InvalidBatchTransition)
    async def transition_handler(request: Request, exc: InvalidBatchTransition):
        return error_response(409, exc, status=exc.current)

    @app.exception_handler(PartialBatchStartFailure)
    async def partial_start_handler(request: Request, exc: PartialBatchStartFailure):
        service: ShopFloorService = request.app.state.service
        batch = service.batches.get(exc.batch_id)
        return error_response(207, exc, failures=exc.failures, batch=batch_out(batch))

    @app.exception_handler(RecordNotFoundError)
    async def not_found_handler(request: Request, exc: RecordNotFoundError):
        return error_response(404, exc)

    @app.exception_handler(DuplicateRecordError)
    async def duplicate_handler(request: Request, exc: DuplicateRecordError):
        return error_response(409, exc)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return error_response(400, exc)

    # ------------------------------------------------------------------
    # Stations and orders
    # ------------------------------------------------------------------
    @app.get("/stations")
    async def list_stations(request: Request):
        service: ShopFloorService = request.app.state.service
        return [station_out(station) for station in service.registry.stations()]

    @app.post("/orders", status_code=201)
    async def send_to_production(payload: OrderIn, request: Request):
        service: ShopFloorService = request.app.state.service
        order = service.send_to_production(
            payload.order_number,
            payload.customer_name,
            payload.part_ids,
            order_id=payload.order_id,
        )
        return order_out(service.order_summary(order.id))

    @app.get("/orders")
    async def list_orders(request: Request):
        service: ShopFloorService = request.app.state.service
        return [order_out(summary) for summary in service.list_order_summaries()]

    @app.get("/orders/{order_id}")
    async def get_order(order_id: str, request: Request):
        service: ShopFloorService = request.app.state.service
        return order_out(service.order_summary(order_id))

    @app.get("/orders/{order_id}/tracking")
    async def order_tracking(order_id: str, request: Request):
        service: ShopFloorService = request.app.state.service
        return [progress_out(progress) for progress in service.order_tracking(order_id)]

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------
    @app.post("/tracking/scan", status_code=201)
    async def scan_part(payload: ScanIn, request: Request):
        service: ShopFloorService = request.app.state.service
        event = service.record_scan(
            payload.part_id,
            payload.station,
            payload.scanned_by,
            order_id=payload.order_id,
            notes=payload.notes,
            part_name=payload.part_name,
            scanned_by_name=payload.scanned_by_name,
            barcode=payload.barcode,
        )
        result = scan_out(event)
        result["order_status"] = service.order_status(event.order_id)
        return result

    @app.get("/tracking/parts/{part_id}")
    async def part_progress(part_id: str, request: Request):
        service: ShopFloorService = request.app.state.service
        return progress_out(service.part_progress(part_id))

    @app.get("/tracking/parts/{part_id}/history")
    async def part_history(part_id: str, request: Request):
        service: ShopFloorService = request.app.state.service
        return [scan_out(event) for event in service.history_of(part_id)]

    @app.get("/tracking/stations/{station}/parts")
    async def parts_at_station(station: str, request: Request):
        service: ShopFloorService = request.app.state.service
        return [scan_out(event) for event in service.parts_at_station(station)]

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------
    @app.get("/batches")
    async def list_batches(request: Request):
        service: ShopFloorService = request.app.state.service
        return [batch_out(batch) for batch in service.batches.list_batches()]

    @app.get("/batches/candidates")
    async def batch_candidates(request: Request):
        service: ShopFloorService = request.app.state.service
        return [
            order_out(service.order_summary(order.id))
            for order in service.batches.batch_candidates()
        ]

    @app.post("/batches", status_code=201)
    async def create_batch(payload: BatchIn, request: Request):
        service: ShopFloorService = request.app.state.service
        batch = service.batches.create_batch(payload.order_ids, payload.name)
        return batch_out(batch)

    @app.get("/batches/{batch_id}")
    async def get_batch(batch_id: str, request: Request):
        service: ShopFloorService = request.app.state.service
        return batch_out(service.batches.get(batch_id))

    @app.post("/batches/{batch_id}/start")
    async def start_batch(
        batch_id: str, request: Request, payload: Optional[BatchStartIn] = None
    ):
        service: ShopFloorService = request.app.state.service
        order_ids = payload.order_ids if payload is not None else None
        return batch_out(service.batches.start_batch(batch_id, order_ids))

    @app.post("/batches/{batch_id}/pause")
    async def pause_batch(batch_id: str, request: Request):
        service: ShopFloorService = request.app.state.service
        return batch_out(service.batches.pause_batch(batch_id))

    @app.post("/batches/{batch_id}/complete")
    async def complete_batch(batch_id: str, request: Request):
        service: ShopFloorService = request.app.state.service
        return batch_out(service.batches.complete_batch(batch_id))

    @app.post("/batches/{batch_id}/check")
    async def check_batch(batch_id: str, request: Request):
        service: ShopFloorService = request.app.state.service
        return batch_out(service.batches.check_completion(batch_id))

    @app.delete("/batches/{batch_id}", status_code=204)
    async def delete_batch(batch_id: str, request: Request):
        service: ShopFloorService = request.app.state.service
        service.batches.delete_batch(batch_id)
        return Response(status_code=204)

    return app


DEMO_ORDERS = (
    ("ORD-001", "Kitchen Studio Meyer", ("PNL-001", "PNL-002", "PNL-003", "PNL-004")),
    ("ORD-002", "Bakker Interiors", ("PNL-005", "PNL-006", "PNL-007")),
    ("ORD-003", "De Vries Woonkeukens", ("PNL-008", "PNL-009", "PNL-010")),
)

DEMO_SCANS = (
    ("PNL-001", "wallsaw"),
    ("PNL-002", "wallsaw"),
    ("PNL-003", "cnc"),
    ("PNL-004", "cnc"),
    ("PNL-005", "banding"),
    ("PNL-006", "banding"),
    ("PNL-007", "packaging"),
)


def ensure_demo_data(service: ShopFloorService) -> None:
    if service.directory.list_orders():
        return
    for order_number, customer, part_ids in DEMO_ORDERS:
        service.send_to_production(order_number, customer, part_ids)
    for part_id, station in DEMO_SCANS:
        if station in service.registry:
            service.record_scan(
                part_id, station, "system", scanned_by_name="System Seed", notes="Demo data"
            )
    logger.info("Seeded %d demo orders", len(DEMO_ORDERS))


__all__ = ["create_app", "ensure_demo_data"]
