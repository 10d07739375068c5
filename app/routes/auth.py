from flask import Blueprint, request, g, current_app
from sqlalchemy import select
import datetime
import re

from ..extensions import db
from ..models import BLOOD_TYPES, User
from ..services.booking_service import parse_date
from ..utils.auth import check_password, create_access_token, hash_password, token_required
from ..utils.errors import AuthenticationError, ConflictError, ValidationError
from ..utils.responses import success_response
from ..utils.serializers import serialize_user

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")
GENDERS = ("home", "dona", "altre", "no-especificar")
MIN_AGE = 18
MAX_AGE = 65


def age_on(birthdate, today):
    return int((today - birthdate).days // 365.25)


@auth_bp.route("/register", methods=["POST"])
def register_user():
    """
    Register a new donor
    ---
    tags:
      - Authentication
    security: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [email, password, name, phone, birthdate, gender, bloodType]
          properties:
            email:
              type: string
            password:
              type: string
            name:
              type: string
            phone:
              type: string
            birthdate:
              type: string
              format: date
            gender:
              type: string
              enum: [home, dona, altre, no-especificar]
            bloodType:
              type: string
            hasDonatedBefore:
              type: boolean
    responses:
      201:
        description: User registered, token returned
      400:
        description: Missing or invalid fields
      409:
        description: Email already registered
    """
    data = request.get_json(silent=True) or {}

    # Validate required fields
    required = ["email", "password", "name", "phone", "birthdate", "gender", "bloodType"]
    missing = [f for f in required if not data.get(f)]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}", missing[0]
        )

    email = str(data["email"]).strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Please enter a valid email", "email")
    if len(data["password"]) < 6:
        raise ValidationError("Password must be at least 6 characters", "password")
    if data["gender"] not in GENDERS:
        raise ValidationError("Invalid gender", "gender")
    if data["bloodType"] not in BLOOD_TYPES:
        raise ValidationError("Invalid blood type", "bloodType")

    birthdate = parse_date(data["birthdate"], "birthdate")

    age = age_on(birthdate, datetime.date.today())
    if age < MIN_AGE:
        raise ValidationError("Must be at least 18 years old", "birthdate")
    if age > MAX_AGE:
        raise ValidationError("Must be 65 years old or younger", "birthdate")

    # Check if email already exists
    existing = db.session.scalar(select(User).where(User.email == email))
    if existing:
        raise ConflictError("Email already registered", "email")

    has_donated_before = bool(data.get("hasDonatedBefore", False))
    user = User(
        email=email,
        password_hash=hash_password(data["password"]),
        name=data["name"].strip(),
        phone=data["phone"].strip(),
        birthdate=birthdate,
        gender=data["gender"],
        blood_type=data["bloodType"],
        has_donated_before=has_donated_before,
        # Bonus tokens for experienced donors
        tokens=current_app.config["EXPERIENCED_DONOR_BONUS"] if has_donated_before else 0,
        donation_count=0,
        lives_saved=0,
    )
    db.session.add(user)
    db.session.commit()

    current_app.logger.info(f"Registered user {user.id} ({email})")
    return success_response(
        {"user": serialize_user(user), "token": create_access_token(user)},
        201,
        "Registration successful",
    )


@auth_bp.route("/login", methods=["POST"])
def login_user():
    data = request.get_json(silent=True) or {}
    email = str(data.get("email") or "").strip().lower()
    password = data.get("password")

    if not email or not password:
        raise ValidationError("Email and password required")

    user = db.session.scalar(select(User).where(User.email == email))
    if not user or not check_password(password, user.password_hash):
        raise AuthenticationError("Invalid email or password")

    return success_response({"user": serialize_user(user), "token": create_access_token(user)})


@auth_bp.route("/me", methods=["GET"])
@token_required
def get_current_user():
    user = db.session.get(User, g.user_id)
    return success_response(serialize_user(user))


@auth_bp.route("/logout", methods=["POST"])
@token_required
def logout_user():
    # Tokens are stateless; the client drops its copy
    return success_response({"message": "Logout successful"})


@auth_bp.route("/refresh", methods=["POST"])
@token_required
def refresh_token():
    user = db.session.get(User, g.user_id)
    return success_response({"token": create_access_token(user)})
