"""Schema: wire primitives and the BookingService messages."""
