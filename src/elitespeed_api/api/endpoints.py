"""EliteSpeed API endpoint paths (relative to the configured base URL)."""

TRACK_PARCEL = "/client/colis/track/{code}"
