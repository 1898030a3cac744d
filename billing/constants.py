"""Centralized application constants: single source of truth for hardcoded values."""

# --- Session ---
COOKIE_NAME = "vyapaar_session"

# --- Payment types / cycles ---
PAYMENT_ONE_TIME = "one-time"
PAYMENT_RECURRING = "recurring"
CYCLE_MONTHLY = "monthly"
CYCLE_YEARLY = "yearly"

# --- Subscription status ---
STATUS_ACTIVE = "active"
STATUS_CANCELLED = "cancelled"
STATUS_PAUSED = "paused"

# --- Package defaults ---
DEFAULT_DURATION_MONTHS = 12
PACKAGE_TYPES = ("Business", "Influencer")

# --- Razorpay ---
RAZORPAY_API_URL = "https://api.razorpay.com/v1"
RAZORPAY_MAX_NOTES = 15  # hard limit imposed by the gateway
PAYMENT_METHOD_RAZORPAY = "razorpay"

# --- Anti-refund metadata ---
REFUND_STATUS = "no_refund_allowed"
REFUND_POLICY = "no_refunds"

# --- Gateway retry (urllib3 Retry on the SDK session) ---
GATEWAY_MAX_RETRIES = 2  # three attempts in total
GATEWAY_BACKOFF_FACTOR = 1  # seconds, doubled per retry
GATEWAY_BACKOFF_MAX = 10  # seconds
GATEWAY_RETRY_STATUSES = (429,)

# --- HTTP Client ---
HTTP_TOTAL_TIMEOUT = 30  # seconds
HTTP_CONNECT_TIMEOUT = 10  # seconds

# --- Worker ---
ARQ_MAX_JOBS = 10
ARQ_JOB_TIMEOUT = 600  # seconds (10 min)
AUTOPAY_CRON_MINUTES = set(range(0, 60, 5))

# --- CORS ---
CORS_ALLOWED_HEADERS = ["authorization", "x-client-info", "apikey", "content-type"]
