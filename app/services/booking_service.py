# Appointment booking: slot admission, cancellation and availability
import datetime
import re
import uuid

from flask import current_app
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from app.extensions import db
from app.models import (
    ACTIVE_APPOINTMENT_STATUSES,
    DONATION_TYPES,
    TERMINAL_APPOINTMENT_STATUSES,
    Appointment,
    AppointmentSlot,
    DonationCenter,
)
from app.utils.errors import NotFoundError, ValidationError

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

ALLOWED_TRANSITIONS = {
    "scheduled": {"confirmed", "cancelled", "no-show"},
    "confirmed": {"completed", "cancelled", "no-show"},
}


def parse_date(value, field="date"):
    """Accept ``YYYY-MM-DD`` or a full ISO datetime and return a ``date``."""
    if isinstance(value, datetime.date):
        return value
    if not value or not isinstance(value, str):
        raise ValidationError("Date is required (YYYY-MM-DD)", field)
    day, _, clock = value.partition("T")
    try:
        if clock:
            datetime.datetime.fromisoformat(value.replace("Z", "+00:00"))
        return datetime.date.fromisoformat(day)
    except ValueError:
        raise ValidationError("Invalid date format, use YYYY-MM-DD", field)


def validate_time(value):
    if not isinstance(value, str) or not TIME_PATTERN.match(value):
        raise ValidationError("Time must be in HH:mm format", "time")
    return value


def generate_confirmation_code():
    return f"APT-{uuid.uuid4().hex[:10].upper()}"


def slot_times():
    """All bookable times of a day, e.g. ``["09:00", "09:30", ..., "17:30"]``."""
    config = current_app.config
    times = []
    for hour in range(config["SLOT_START_HOUR"], config["SLOT_END_HOUR"]):
        for minute in range(0, 60, config["SLOT_MINUTES"]):
            times.append(f"{hour:02d}:{minute:02d}")
    return times


def get_center_or_404(center_id):
    center = db.session.get(DonationCenter, center_id) if center_id else None
    if not center:
        raise NotFoundError("Donation center not found")
    return center


def _active_count_query(center_id, date, time):
    return select(func.count(Appointment.id)).where(
        Appointment.center_id == center_id,
        Appointment.date == date,
        Appointment.time == time,
        Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES),
    )


def _count_active(center_id, date, time):
    return db.session.scalar(_active_count_query(center_id, date, time))


def _ensure_slot(center_id, date, time):
    """
    Make sure the counter row for (center, date, time) exists.

    A new row starts from the number of active appointments already stored
    for that slot. Must run before any other write of the request: losing
    the insert race rolls the session back.
    """
    exists = db.session.scalar(
        select(AppointmentSlot.id).where(
            AppointmentSlot.center_id == center_id,
            AppointmentSlot.date == date,
            AppointmentSlot.time == time,
        )
    )
    if exists:
        return

    booked = _count_active(center_id, date, time)
    try:
        db.session.add(
            AppointmentSlot(center_id=center_id, date=date, time=time, booked=booked)
        )
        db.session.flush()
    except IntegrityError:
        # Another request created the row first
        db.session.rollback()


def _reserve_slot(center, date, time):
    """
    Take one place in the slot.

    The counter row is the lock; admission is decided by the same count of
    active appointments that ``check_availability`` reports, so status
    changes made outside this module cannot leave a stale counter behind.
    """
    _ensure_slot(center.id, date, time)

    active = (
        _active_count_query(
            AppointmentSlot.center_id, AppointmentSlot.date, AppointmentSlot.time
        )
        .correlate(AppointmentSlot)
        .scalar_subquery()
    )
    result = db.session.execute(
        update(AppointmentSlot)
        .where(
            AppointmentSlot.center_id == center.id,
            AppointmentSlot.date == date,
            AppointmentSlot.time == time,
            active < center.capacity,
        )
        .values(booked=active + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        current_app.logger.info(
            f"Slot full: center={center.id} date={date.isoformat()} time={time}"
        )
        raise ValidationError("Time slot is full", "time")


def _release_slot(appointment):
    db.session.execute(
        update(AppointmentSlot)
        .where(
            AppointmentSlot.center_id == appointment.center_id,
            AppointmentSlot.date == appointment.date,
            AppointmentSlot.time == appointment.time,
            AppointmentSlot.booked > 0,
        )
        .values(booked=AppointmentSlot.booked - 1)
        .execution_options(synchronize_session=False)
    )


def create_appointment(user_id, center_id, donation_type, date, time, notes=None):
    """
    Book a place in a slot and return the confirmed appointment.

    Admission is a conditional increment of the slot counter, so two
    requests racing for the last place cannot both succeed.
    """
    if donation_type not in DONATION_TYPES:
        raise ValidationError("Invalid donation type", "donationType")
    appointment_date = parse_date(date)
    validate_time(time)
    if notes is not None and not isinstance(notes, str):
        raise ValidationError("Notes must be text", "notes")
    if notes and len(notes) > 500:
        raise ValidationError("Notes cannot exceed 500 characters", "notes")

    center = get_center_or_404(center_id)
    capacity = center.capacity
    center_id = center.id

    _reserve_slot(center, appointment_date, time)

    appointment = Appointment(
        user_id=user_id,
        center_id=center_id,
        donation_type=donation_type,
        date=appointment_date,
        time=time,
        notes=notes,
        status="confirmed",
        confirmation_code=generate_confirmation_code(),
    )
    db.session.add(appointment)
    db.session.commit()

    current_app.logger.info(
        f"Appointment {appointment.id} booked for user {user_id} at center "
        f"{center_id} on {appointment_date.isoformat()} {time} (capacity {capacity})"
    )
    return appointment


def list_appointments(user_id, status=None):
    stmt = select(Appointment).where(Appointment.user_id == user_id)
    if status:
        stmt = stmt.where(Appointment.status == status)
    stmt = stmt.order_by(Appointment.date.desc(), Appointment.time.desc())
    return db.session.scalars(stmt).all()


def get_appointment(appointment_id, user_id):
    appointment = db.session.scalar(
        select(Appointment).where(
            Appointment.id == appointment_id, Appointment.user_id == user_id
        )
    )
    if not appointment:
        raise NotFoundError("Appointment not found")
    return appointment


def cancel_appointment(appointment_id, user_id, reason=None):
    appointment = get_appointment(appointment_id, user_id)

    if appointment.status in TERMINAL_APPOINTMENT_STATUSES:
        raise ValidationError("Cannot cancel this appointment", "status")

    appointment.status = "cancelled"
    if reason:
        appointment.notes = f"Cancelled: {reason}"[:500]
    _release_slot(appointment)
    db.session.commit()

    current_app.logger.info(f"Appointment {appointment.id} cancelled by user {user_id}")
    return appointment


def update_appointment_status(appointment_id, new_status):
    """Move an appointment along its lifecycle; terminal states are final."""
    appointment = db.session.get(Appointment, appointment_id)
    if not appointment:
        raise NotFoundError("Appointment not found")

    allowed = ALLOWED_TRANSITIONS.get(appointment.status, set())
    if new_status not in allowed:
        raise ValidationError(
            f"Cannot change status from {appointment.status} to {new_status}",
            "status",
        )

    was_active = appointment.status in ACTIVE_APPOINTMENT_STATUSES
    appointment.status = new_status
    if was_active and new_status not in ACTIVE_APPOINTMENT_STATUSES:
        _release_slot(appointment)
    if new_status == "confirmed" and not appointment.confirmation_code:
        appointment.confirmation_code = generate_confirmation_code()
    db.session.commit()
    return appointment


def check_availability(center_id, date):
    """
    Advisory view of every slot of the day. Nothing is reserved, so the
    result can be stale as soon as it is returned.
    """
    if not center_id or not date:
        raise ValidationError("Missing required parameters")

    center = get_center_or_404(center_id)
    appointment_date = parse_date(date)

    rows = db.session.execute(
        select(Appointment.time, func.count(Appointment.id))
        .where(
            Appointment.center_id == center.id,
            Appointment.date == appointment_date,
            Appointment.status.in_(ACTIVE_APPOINTMENT_STATUSES),
        )
        .group_by(Appointment.time)
    ).all()
    booked_by_time = {time: count for time, count in rows}

    slots = []
    for time in slot_times():
        booked = booked_by_time.get(time, 0)
        slots.append(
            {
                "time": time,
                "available": booked < center.capacity,
                "capacity": center.capacity,
                "booked": booked,
            }
        )
    return slots
