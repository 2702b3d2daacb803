"""
FastAPI Application Entry Point

Kitchen Queue Scheduler - station screens and dashboards read the
prioritized queue and send cook actions back.

Endpoints:
    - GET /api/kitchen/queue: Ordered queue for a table/station
    - GET /api/kitchen/stats: Queue statistics
    - GET /api/kitchen/tables: Tables with units in the queue
    - POST /api/kitchen/bills/{bill_id}/items/{reference}/start|complete|undo
    - GET|DELETE /api/kitchen/error: Read or dismiss the error banner
    - DELETE /api/kitchen/timings: Operator cleanup of fallback timings
    - POST /api/bills, /api/order-items, /api/timings: Development intake
    - GET /health: System health check

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import sys
import logging
from datetime import datetime
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Depends, Query, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
import redis

# Windows-specific event loop policy
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from kitchen_queue.core.config import get_settings, setup_logging
from kitchen_queue.schemas import (
    Bill,
    CompleteCookingRequest,
    DeleteTimingsResponse,
    ErrorStateResponse,
    HealthResponse,
    KitchenQueueResponse,
    KitchenStats,
    OrderItemMaster,
    StationType,
    TimingRecord,
    TransitionResponse,
)
from kitchen_queue.services.kitchen import (
    KitchenErrorState,
    KitchenQueueAggregator,
    KitchenQueueView,
    KitchenTransitionController,
    ScoringWeights,
    TransitionResult,
    build_view,
)
from kitchen_queue.services.store import BaseKitchenStore, get_kitchen_store

settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)


# =============================================================================
# APPLICATION LIFECYCLE
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info(f"🚀 Starting {settings.app_name}")
    logger.info(f"   Version: {settings.app_version}")
    logger.info(f"   Environment: {settings.env_mode.value}")
    logger.info(f"   Debug: {settings.debug}")
    logger.info("=" * 60)

    if settings.use_sql_store:
        from kitchen_queue.database import init_db, engine

        await init_db()
        logger.info("✅ Database initialized")

    store = get_kitchen_store()
    errors = KitchenErrorState()
    aggregator = KitchenQueueAggregator(
        errors=errors,
        weights=ScoringWeights.from_settings(settings),
        default_bill_order=settings.default_bill_order,
    )
    business_date = settings.business_date()
    aggregator.attach(store, business_date)
    await aggregator.load(store, business_date)

    app.state.store = store
    app.state.errors = errors
    app.state.aggregator = aggregator
    app.state.controller = KitchenTransitionController(store, errors)

    logger.info(f"✅ Kitchen Store: {store.provider_name}")
    logger.info(f"✅ Business date: {business_date}")
    logger.info("=" * 60)
    logger.info("✅ Application ready!")
    logger.info("=" * 60)

    yield  # Application runs

    # Shutdown
    logger.info("Shutting down...")
    aggregator.detach()
    if settings.use_sql_store:
        await engine.dispose()
    logger.info("✅ Cleanup complete")


# =============================================================================
# APPLICATION INSTANCE
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description=(
        "Kitchen work-queue scheduler: flattens open bills into a single "
        "prioritized queue of cook/grill units and tracks each unit."
    ),
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# DEPENDENCIES
# =============================================================================

def get_store(request: Request) -> BaseKitchenStore:
    return request.app.state.store


def get_aggregator(request: Request) -> KitchenQueueAggregator:
    return request.app.state.aggregator


def get_controller(request: Request) -> KitchenTransitionController:
    return request.app.state.controller


def get_errors(request: Request) -> KitchenErrorState:
    return request.app.state.errors


def require_development() -> None:
    if not settings.is_development:
        raise HTTPException(
            status_code=403,
            detail="Intake endpoints only available in development mode"
        )


def current_view(
    aggregator: KitchenQueueAggregator,
    table: Optional[int],
    station: Optional[StationType],
) -> KitchenQueueView:
    return build_view(aggregator.view.queue, table, station, aggregator.clock())


def transition_response(result: TransitionResult) -> TransitionResponse:
    return TransitionResponse(**result.to_dict())


# =============================================================================
# ROOT & HEALTH ENDPOINTS
# =============================================================================

@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """API root with navigation links."""
    return {
        "message": f"🍳 Welcome to {settings.app_name}",
        "version": settings.app_version,
        "environment": settings.env_mode.value,
        "documentation": "/docs",
        "queue": "/api/kitchen/queue",
        "health": "/health",
    }


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="System Health Check",
)
async def health_check(
    store: BaseKitchenStore = Depends(get_store),
) -> HealthResponse:
    """Verify all system components are operational."""

    store_status = "healthy" if await store.health_check() else "unhealthy"

    # Check Redis
    redis_status = "healthy"
    try:
        r = redis.Redis.from_url(settings.redis_url, socket_timeout=2)
        r.ping()
        r.close()
    except Exception as e:
        redis_status = f"unhealthy: {str(e)}"
        logger.error(f"Redis health check failed: {e}")

    overall = "operational" if all(
        s == "healthy" for s in [store_status, redis_status]
    ) else "degraded"

    return HealthResponse(
        status=overall,
        store=store_status,
        redis=redis_status,
        timestamp=datetime.now(),
    )


# =============================================================================
# KITCHEN QUEUE ENDPOINTS
# =============================================================================

@app.get(
    "/api/kitchen/queue",
    response_model=KitchenQueueResponse,
    tags=["Kitchen"],
    summary="Ordered Kitchen Queue",
)
async def kitchen_queue(
    table: Optional[int] = Query(None, ge=0),
    station: Optional[StationType] = Query(None),
    aggregator: KitchenQueueAggregator = Depends(get_aggregator),
) -> KitchenQueueResponse:
    """Queue for one table and/or station, most urgent unit first."""
    view = current_view(aggregator, table, station)

    return KitchenQueueResponse(
        queue=view.filtered_queue,
        stats=view.stats,
        available_tables=view.available_tables,
        next_item=view.next_item,
        cooking_items=view.cooking_items,
        computed_at=aggregator.view.computed_at,
        error=aggregator.errors.error,
    )


@app.get(
    "/api/kitchen/stats",
    response_model=KitchenStats,
    tags=["Kitchen"],
)
async def kitchen_stats(
    table: Optional[int] = Query(None, ge=0),
    station: Optional[StationType] = Query(None),
    aggregator: KitchenQueueAggregator = Depends(get_aggregator),
) -> KitchenStats:
    """Counts by status and average wait of the filtered queue."""
    return current_view(aggregator, table, station).stats


@app.get(
    "/api/kitchen/tables",
    tags=["Kitchen"],
)
async def kitchen_tables(
    aggregator: KitchenQueueAggregator = Depends(get_aggregator),
) -> dict[str, list[int]]:
    """Tables that currently have units in the queue."""
    return {"tables": aggregator.view.available_tables}


# =============================================================================
# TRANSITION ENDPOINTS
# =============================================================================

@app.post(
    "/api/kitchen/bills/{bill_id}/items/{reference}/start",
    response_model=TransitionResponse,
    tags=["Transitions"],
)
async def start_cooking(
    bill_id: str,
    reference: str,
    controller: KitchenTransitionController = Depends(get_controller),
) -> TransitionResponse:
    """Start cooking a line item."""
    return transition_response(await controller.start_cooking(bill_id, reference))


@app.post(
    "/api/kitchen/bills/{bill_id}/items/{reference}/complete",
    response_model=TransitionResponse,
    tags=["Transitions"],
)
async def complete_cooking(
    bill_id: str,
    reference: str,
    body: Optional[CompleteCookingRequest] = None,
    controller: KitchenTransitionController = Depends(get_controller),
) -> TransitionResponse:
    """Finish one unit of a line item."""
    batch_order = body.batch_order if body else 1
    return transition_response(
        await controller.complete_cooking(bill_id, reference, batch_order)
    )


@app.post(
    "/api/kitchen/bills/{bill_id}/items/{reference}/undo",
    response_model=TransitionResponse,
    tags=["Transitions"],
)
async def undo_completed(
    bill_id: str,
    reference: str,
    controller: KitchenTransitionController = Depends(get_controller),
) -> TransitionResponse:
    """Take one finished unit back to cooking."""
    return transition_response(await controller.undo_completed(bill_id, reference))


@app.get(
    "/api/kitchen/error",
    response_model=ErrorStateResponse,
    tags=["Transitions"],
)
async def read_error(errors: KitchenErrorState = Depends(get_errors)) -> ErrorStateResponse:
    return ErrorStateResponse(error=errors.error)


@app.delete(
    "/api/kitchen/error",
    response_model=ErrorStateResponse,
    tags=["Transitions"],
)
async def clear_error(errors: KitchenErrorState = Depends(get_errors)) -> ErrorStateResponse:
    """Dismiss the error banner."""
    errors.clear()
    return ErrorStateResponse(error=None)


# =============================================================================
# MAINTENANCE ENDPOINTS
# =============================================================================

@app.delete(
    "/api/kitchen/timings",
    response_model=DeleteTimingsResponse,
    tags=["Maintenance"],
    summary="Delete All Fallback Timing Records",
)
async def delete_all_timings(
    controller: KitchenTransitionController = Depends(get_controller),
) -> DeleteTimingsResponse:
    """
    Operator cleanup of the legacy timing collection.

    The scheduler never calls this itself.
    """
    logger.warning("Operator requested deletion of all kitchen timing records")
    return DeleteTimingsResponse(**await controller.delete_all_timings())


# =============================================================================
# DEVELOPMENT INTAKE ENDPOINTS
# =============================================================================

@app.post(
    "/api/bills",
    response_model=Bill,
    tags=["Development"],
    dependencies=[Depends(require_development)],
)
async def upsert_bill(bill: Bill, store: BaseKitchenStore = Depends(get_store)) -> Bill:
    """Create or replace a bill (stands in for the billing screens)."""
    logger.info(f"Intake: bill {bill.id} for table {bill.table_number}")
    return await store.save_bill(bill)


@app.post(
    "/api/order-items",
    response_model=OrderItemMaster,
    tags=["Development"],
    dependencies=[Depends(require_development)],
)
async def upsert_order_item(
    order_item: OrderItemMaster,
    store: BaseKitchenStore = Depends(get_store),
) -> OrderItemMaster:
    return await store.save_order_item(order_item)


@app.post(
    "/api/timings",
    response_model=TimingRecord,
    tags=["Development"],
    dependencies=[Depends(require_development)],
)
async def upsert_timing(
    record: TimingRecord,
    store: BaseKitchenStore = Depends(get_store),
) -> TimingRecord:
    return await store.save_timing(record)


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all exception handler."""
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "Internal Server Error",
            "detail": str(exc) if settings.debug else "An unexpected error occurred",
        },
    )
