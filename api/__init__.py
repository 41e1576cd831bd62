"""HTTP API for the card identifier scanner."""
