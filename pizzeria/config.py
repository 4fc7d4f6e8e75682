import os

# ----- Storage -----
# In-memory SQLite by default: state lives for the process lifetime only.
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite://")

# ----- Logging -----
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# ----- Payments -----
PAYMENT_DELAY_SECONDS = float(os.getenv("PAYMENT_DELAY_SECONDS", "1.0"))
PAYMENT_OUTCOMES = 10
PAYMENT_SUCCESS_OUTCOMES = 9

# ----- Delivery -----
BASE_DELIVERY_MINUTES = int(os.getenv("BASE_DELIVERY_MINUTES", "20"))

# ----- Menu -----
SEED_MENU = os.getenv("SEED_MENU", "true").lower() in ("1", "true", "yes")

# ----- Notifications (disabled when empty) -----
NOTIFICATION_SERVICE_URL = os.getenv("NOTIFICATION_SERVICE_URL", "")
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "5.0"))

PORT = int(os.getenv("PORT", "8000"))
