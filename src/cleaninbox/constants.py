"""Constants for cleaninbox."""

from pathlib import Path

# --- Config paths ---
CONFIG_DIR = Path.home() / ".cleaninbox"
CREDENTIALS_PATH = CONFIG_DIR / "credentials.json"
TOKEN_PATH = CONFIG_DIR / "token.json"
USERS_DB_PATH = CONFIG_DIR / "users.db"
RULES_PATH = CONFIG_DIR / "rules.json"
CLEAN_LOG_PATH = CONFIG_DIR / "clean_log.json"

# --- Environment ---
ENV_GOOGLE_CLIENT_ID = "CLEANINBOX_GOOGLE_CLIENT_ID"
ENV_GOOGLE_CLIENT_SECRET = "CLEANINBOX_GOOGLE_CLIENT_SECRET"
ENV_GOOGLE_REDIRECT_URI = "CLEANINBOX_GOOGLE_REDIRECT_URI"
ENV_OUTLOOK_TOKEN = "CLEANINBOX_OUTLOOK_TOKEN"
ENV_IMAP_PASSWORD = "CLEANINBOX_IMAP_PASSWORD"
DEFAULT_REDIRECT_URI = "http://localhost:3000/oauth2callback"

# --- Gmail API ---
SCOPES = ["https://www.googleapis.com/auth/gmail.modify"]
PAGE_SIZE = 500  # messages per list page

# --- Microsoft Graph ---
GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0/me"
GRAPH_PAGE_SIZE = 50
GRAPH_SELECT_FIELDS = (
    "id,subject,from,receivedDateTime,isRead,categories,"
    "inferenceClassification,body,internetMessageHeaders"
)

# --- IMAP ---
IMAP_PORT = 993
IMAP_MAILBOX = "INBOX"

# --- HTTP ---
HTTP_TIMEOUT = 15.0  # seconds, unsubscribe requests
USER_AGENT = "cleaninbox/0.1.0"

# --- Classification keywords (regex, matched case-insensitively) ---
NEWSLETTER_PATTERNS = [
    r"newsletter",
    r"news",
    r"digest",
    r"promo",
    r"promotion",
    r"offre",
    r"offers",
    r"sale",
    r"update",
    r"unsubscribe",
]

SPAM_PATTERNS = [
    r"viagra",
    r"free money",
    r"win a prize",
    r"click here",
    r"urgent",
]

UNSUBSCRIBE_PATTERNS = [
    r"unsubscribe",
    r"unsub",
    r"se d[ée]sabonner",
    r"d[ée]sinscrire",
    r"d[ée]sabonnement",
    r"opt[- ]?out",
    r"manage preferences",
    r"update subscription",
    r"cancel subscription",
    r"modifier mes pr[ée]f[ée]rences",
    r"stop receiving",
]

# --- Premium tiers ---
LEVEL_FREE = 0
LEVEL_PREMIUM = 1  # 0.99/month
LEVEL_PREMIUM_PLUS = 2  # 4.99/month
PREMIUM_LEVELS = (LEVEL_FREE, LEVEL_PREMIUM, LEVEL_PREMIUM_PLUS)

FEATURE_LEVELS = {
    "clean": LEVEL_FREE,
    "auto_unsubscribe": LEVEL_PREMIUM,
    "scheduled_clean": LEVEL_PREMIUM_PLUS,
}

# --- Scheduler ---
JOB_MAX_INSTANCES = 5  # overlapping runs allowed per job
SCHEDULER_WORKERS = 10

# --- Display ---
SUBJECT_DISPLAY_LIMIT = 60
