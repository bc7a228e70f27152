"""OpenTelemetry instruments for booking outcomes.

Only the metrics API is used here; whichever MeterProvider the deployment
installs receives the measurements, and they are no-ops otherwise.
"""

from opentelemetry import metrics

meter = metrics.get_meter("seatbook")

bookings_created = meter.create_counter(
    name="bookings_created_total",
    description="Bookings confirmed",
    unit="1",
)

booking_rejections = meter.create_counter(
    name="booking_rejections_total",
    description="Booking operations rejected, by reason",
    unit="1",
)

seats_reserved = meter.create_counter(
    name="seats_reserved_total",
    description="Seats taken from ride inventory",
    unit="1",
)

seats_released = meter.create_counter(
    name="seats_released_total",
    description="Seats returned to ride inventory",
    unit="1",
)

seat_ledger_conflicts = meter.create_counter(
    name="seat_ledger_conflicts_total",
    description="Concurrency conflicts retried by the booking lifecycle",
    unit="1",
)

rides_completed = meter.create_counter(
    name="rides_completed_total",
    description="Rides marked completed",
    unit="1",
)

rides_cancelled = meter.create_counter(
    name="rides_cancelled_total",
    description="Rides cancelled by drivers or admins",
    unit="1",
)
