"""Domain layer (pure logic).

- Keep round rules, draws and user-facing message texts here.
- Avoid I/O: no HTTP/FastAPI, no Redis, no schedulers.
- Prefer deterministic functions (the random generator is passed in as an argument).
"""
