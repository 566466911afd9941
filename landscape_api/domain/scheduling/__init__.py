"""
Scheduling Domain

Per-date calendar of bookable time slots.

Structure:
```
landscape_api/domain/scheduling/
├── slots.py       # Default slots, display formatting, slot-list helpers
├── reconciler.py  # Rebuild slot occupancy from bookings
├── fallback.py    # In-memory copy of day documents used during DB outages
├── store.py       # CalendarDay persistence, atomic slot claim/release
├── service.py     # Availability listing, admin slot edits
├── schemas.py     # Request models
└── router.py      # /api/calendar-* endpoints
```

Occupancy is owned by bookings: every listing re-derives slot state from the
active bookings of each date and writes back days that drifted.
"""
