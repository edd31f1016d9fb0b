"""
Centralized application constants.

Single point of truth for the carrier vocabulary and the reconciliation
defaults shared by the client and the sync engine.
"""

# ==============================================================================
# ELITESPEED CARRIER VOCABULARY
# ==============================================================================

# Compared against normalized statuses (lower-case, accents stripped).
# "Livré" is the only status that finishes an order and pays the seller.
# Gender/number endings ("Livrée", "Livrés") are accepted, other letters are not ("livreur").
DELIVERED_TOKEN = "livre"
DELIVERED_INFLECTIONS = "es"

# Closed set of return/failure statuses ("En voyage", "Hors zone", "Annulé", "Refusée").
# Stems, so every inflection matches. Reshipping is not allowed while an order sits in one of them.
RETURN_STATUS_TOKENS = (
    "en voyage",
    "hors zone",
    "annul",
    "refus",
)

# Current-status fields tried in priority order before falling back to the timeline
STATUS_FIELDS = ("statut", "last_status", "message")

# Timeline key (list of events, newest first) and the status field of one event
TIMELINE_FIELD = "data"
TIMELINE_STATUS_FIELD = "status"

# ==============================================================================
# ELITESPEED API
# ==============================================================================

ELITESPEED_BASE_URL = "https://Elitelivraison.com/api"

# The carrier publishes no SLA; keep calls short so one parcel cannot stall a run
CARRIER_TIMEOUT_SECONDS = 10.0

# ==============================================================================
# RECONCILIATION CONFIGURATION
# ==============================================================================

# Scheduled sync interval
SYNC_INTERVAL_MINUTES = 10

# Orders reconciled in parallel within one run
SYNC_MAX_CONCURRENCY = 5

# Upper bound for a single persistence block (seconds)
DB_TIMEOUT_SECONDS = 15.0

# Errors kept on a run report
MAX_REPORTED_ERRORS = 20

# Run reports returned by the status endpoint
SYNC_HISTORY_SIZE = 10

# History note written by each update source
NOTE_CARRIER_SYNC = "EliteSpeed tracking sync"
NOTE_CARRIER_WEBHOOK = "EliteSpeed webhook"
