import os

# Database Configuration
# Uses default credentials for local Docker Compose setup
DB_URL = os.getenv("DATABASE_URL", "postgres://user:password@db:5432/restaurant_pos")

# Application Metadata
PROJECT_NAME = "Restaurant POS"
VERSION = "1.0.0"
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")  # development | production | test
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Bearer tokens are issued by the auth service; we only verify them
JWT_SECRET = os.getenv("JWT_SECRET", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# Outbox Poller Configuration (runs inside the API process)
RUN_OUTBOX_POLLER = os.getenv("RUN_OUTBOX_POLLER", "true").lower() in ("1", "true", "yes")
POLLING_INTERVAL = int(os.getenv("POLLING_INTERVAL", 1)) # Poller checks for new events every N seconds
MAX_ATTEMPTS = int(os.getenv("MAX_ATTEMPTS", 5)) # Max retries for an event
BATCH_SIZE = int(os.getenv("BATCH_SIZE", 50)) # How many events to fetch per poll

# Reservations without an explicit end time block the table for this long
RESERVATION_DEFAULT_MINUTES = int(os.getenv("RESERVATION_DEFAULT_MINUTES", 120))

# Digital menu links encoded into table QR codes
PUBLIC_MENU_BASE_URL = os.getenv("PUBLIC_MENU_BASE_URL", "https://your-app.com")
