"""Pure domain helpers for the pharmacy kernel (no I/O)."""
