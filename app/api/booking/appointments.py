# Book, list and cancel donation appointments; slot availability
from flask import Blueprint, g, request

from app.services import booking_service
from app.utils.auth import token_required
from app.utils.responses import success_response
from app.utils.serializers import serialize_appointment

appointments_bp = Blueprint("appointments", __name__, url_prefix="/api/appointments")


@appointments_bp.route("/availability", methods=["GET"])
@token_required
def check_availability():
    """
    Slot availability for a donation center on a given date
    ---
    tags:
      - Appointments
    parameters:
      - in: query
        name: centerId
        type: integer
        required: true
      - in: query
        name: donationType
        type: string
        required: false
      - in: query
        name: date
        type: string
        format: date
        required: true
    responses:
      200:
        description: One entry per 30-minute slot between 09:00 and 18:00
      400:
        description: Missing or invalid parameters
      404:
        description: Donation center not found
    """
    center_id = request.args.get("centerId", type=int) or request.args.get(
        "donationCenterId", type=int
    )
    date = request.args.get("date")

    slots = booking_service.check_availability(center_id, date)
    return success_response({"date": date, "slots": slots})


@appointments_bp.route("", methods=["GET"])
@token_required
def get_appointments():
    """
    GET /api/appointments?status=<status>
    Purpose: All appointments of the current user, newest date first.
    """
    status = request.args.get("status")
    appointments = booking_service.list_appointments(g.user_id, status)
    return success_response([serialize_appointment(a) for a in appointments])


@appointments_bp.route("/<int:appointment_id>", methods=["GET"])
@token_required
def get_appointment(appointment_id):
    appointment = booking_service.get_appointment(appointment_id, g.user_id)
    return success_response(serialize_appointment(appointment))


@appointments_bp.route("", methods=["POST"])
@token_required
def create_appointment():
    """
    Book a donation appointment
    ---
    tags:
      - Appointments
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [centerId, donationType, date, time]
          properties:
            centerId:
              type: integer
            donationType:
              type: string
              enum: [sang_total, plaquetes, plasma, "medul·la"]
            date:
              type: string
              format: date
            time:
              type: string
              example: "10:30"
            notes:
              type: string
    responses:
      201:
        description: Appointment confirmed
      400:
        description: Invalid input or time slot full (field "time")
      404:
        description: Donation center not found
    """
    data = request.get_json(silent=True) or {}
    center_id = data.get("centerId") or data.get("donationCenterId")

    appointment = booking_service.create_appointment(
        user_id=g.user_id,
        center_id=center_id,
        donation_type=data.get("donationType"),
        date=data.get("date"),
        time=data.get("time"),
        notes=data.get("notes"),
    )
    return success_response(
        serialize_appointment(appointment), 201, "Appointment created successfully"
    )


@appointments_bp.route("/<int:appointment_id>/cancel", methods=["PATCH"])
@token_required
def cancel_appointment(appointment_id):
    """
    Cancel one of the current user's appointments
    ---
    tags:
      - Appointments
    parameters:
      - in: path
        name: appointment_id
        type: integer
        required: true
      - in: body
        name: body
        required: false
        schema:
          type: object
          properties:
            reason:
              type: string
    responses:
      200:
        description: Appointment cancelled
      400:
        description: Appointment already cancelled or completed (field "status")
      404:
        description: Appointment not found
    """
    data = request.get_json(silent=True) or {}
    appointment = booking_service.cancel_appointment(
        appointment_id, g.user_id, data.get("reason")
    )
    return success_response(serialize_appointment(appointment), 200, "Appointment cancelled")
