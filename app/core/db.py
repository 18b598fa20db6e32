import logging
from logging import INFO

from tortoise import Tortoise

from app.core.config import DB_URL

log = logging.getLogger("app.db")

# Set logging level for Tortoise ORM
logging.getLogger('tortoise').setLevel(INFO)

# Define all models modules for the ORM
MODELS_MODULES = [
    "app.models.restaurant",
    "app.models.menu",
    "app.models.table",
    "app.models.order",
    "app.models.payment",
    "app.models.inventory",
    "app.models.recipe",
    "app.models.staff",
    "app.models.customer",
    "app.models.outbox",
    "app.models.processed_event",
]


async def init_db(db_url: str = DB_URL, generate_schemas: bool = True):
    """Initializes the Tortoise ORM connection and generates schemas."""
    try:
        await Tortoise.init(
            db_url=db_url,
            modules={"models": MODELS_MODULES},
            use_tz=True,
            timezone="UTC",
        )
        if generate_schemas:
            # Create missing tables; migrations are handled outside the service
            await Tortoise.generate_schemas(safe=True)
        log.info("Database connection established and schemas generated.")
    except Exception as e:
        log.critical(f"Could not connect to database. Error: {e}")
        # Re-raise to prevent the application from starting without a database
        raise


async def close_db():
    """Closes all database connections."""
    await Tortoise.close_connections()
    log.info("Database connections closed.")
