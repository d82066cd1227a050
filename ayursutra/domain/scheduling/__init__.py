"""
Scheduling Domain

Pure scheduling rules used by the appointment lifecycle:

- time_calculator.py      # HH:MM parsing, interval overlap, clinic-zone datetimes
- conflict_checker.py     # Overlapping appointments for a practitioner and day
- availability_service.py # Free fixed-length slots inside working hours
- cancellation_policy.py  # Cancellation window and refund tiers

Times are minutes since midnight everywhere below the HTTP boundary.
"""
