import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, status

from app.api.v1.activity import router as activity_router
from app.api.v1.customers import router as customers_router
from app.api.v1.digital_menu import router as digital_menu_router
from app.api.v1.inventory import router as inventory_router
from app.api.v1.menu import router as menu_router
from app.api.v1.orders import router as orders_router
from app.api.v1.payments import router as payments_router
from app.api.v1.recipes import router as recipes_router
from app.api.v1.reports import router as reports_router
from app.api.v1.reservations import router as reservations_router
from app.api.v1.staff import router as staff_router
from app.api.v1.tables import router as tables_router
from app.api.websocket import router as websocket_router
from app.consumers.outbox_poller import start_outbox_poller
from app.core.config import LOG_LEVEL, PROJECT_NAME, RUN_OUTBOX_POLLER, VERSION
from app.core.db import close_db, init_db
from app.core.exception_handlers import setup_exception_handlers
from app.events.notifier import ConnectionManager

logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
log = logging.getLogger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handles startup and shutdown events."""
    log.info(f"Starting {PROJECT_NAME} v{VERSION}...")
    await init_db()  # Connect to DB and generate schemas

    poller = None
    if RUN_OUTBOX_POLLER:
        poller = asyncio.create_task(start_outbox_poller(app.state.notifier))
    yield

    if poller:
        poller.cancel()
        try:
            await poller
        except asyncio.CancelledError:
            pass
    await close_db()
    log.info(f"{PROJECT_NAME} stopped.")


app = FastAPI(
    title=PROJECT_NAME,
    version=VERSION,
    lifespan=lifespan,
    # Configure API documentation and paths
    docs_url="/docs",
    redoc_url="/redoc"
)
app.state.notifier = ConnectionManager()

# Include routers for modular API structure
app.include_router(orders_router, prefix="/api/v1/orders", tags=["Orders"])
app.include_router(payments_router, prefix="/api/v1/payments", tags=["Payments"])
app.include_router(menu_router, prefix="/api/v1/menu", tags=["Menu"])
app.include_router(inventory_router, prefix="/api/v1/inventory", tags=["Inventory"])
app.include_router(recipes_router, prefix="/api/v1/recipes", tags=["Recipes"])
app.include_router(tables_router, prefix="/api/v1/tables", tags=["Tables"])
app.include_router(reservations_router, prefix="/api/v1/reservations", tags=["Reservations"])
app.include_router(reports_router, prefix="/api/v1/reports", tags=["Reports"])
app.include_router(digital_menu_router, prefix="/api/v1/digital-menu", tags=["Digital Menu"])
app.include_router(staff_router, prefix="/api/v1/staff", tags=["Staff"])
app.include_router(customers_router, prefix="/api/v1/customers", tags=["Customers"])
app.include_router(activity_router, prefix="/api/v1/activity", tags=["Activity"])
app.include_router(websocket_router)

setup_exception_handlers(app)


@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check():
    """Simple health check endpoint."""
    return {"status": "ok", "app_name": PROJECT_NAME}
