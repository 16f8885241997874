"""Transport adapters: the binary RPC listener and the HTTP/JSON gateway."""
