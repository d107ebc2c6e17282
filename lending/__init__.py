"""Lending Desk - in-memory lending inventory with fair reservation queues.

This package contains:
- Title records and patrons (book.py, patron.py)
- Copy counters and the checkout/return state machine (inventory.py)
- Per-title FIFO waiting lists and availability listeners (reservations.py)
- The catalog facade with search and recommendations (library.py)
- CLI (main.py) and HTTP API (api.py)
"""

__version__ = "1.0.0"
