"""BookingService: book catalog over a binary RPC contract and its HTTP/JSON gateway."""
