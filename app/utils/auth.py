import datetime
from functools import wraps

import bcrypt
import jwt
from flask import current_app, g, request

from app.extensions import db
from app.models import User
from app.utils.errors import AuthenticationError


def hash_password(plain: str) -> str:
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(plain: str, stored_hash) -> bool:
    if isinstance(stored_hash, str):
        stored_hash = stored_hash.encode("utf-8")
    return bcrypt.checkpw(plain.encode("utf-8"), stored_hash)


def create_access_token(user: User) -> str:
    payload = {
        "user_id": user.id,
        "email": user.email,
        "exp": datetime.datetime.now(datetime.timezone.utc)
        + datetime.timedelta(hours=current_app.config["JWT_EXPIRES_HOURS"]),
    }
    return jwt.encode(payload, current_app.config["SECRET_KEY"], algorithm="HS256")


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, current_app.config["SECRET_KEY"], algorithms=["HS256"])


def token_required(view):
    """
    Require a valid ``Authorization: Bearer <token>`` header.

    Sets ``g.user_id`` and ``g.user_email`` for the wrapped view. A token
    belonging to a user that no longer exists is rejected.
    """

    @wraps(view)
    def wrapper(*args, **kwargs):
        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            raise AuthenticationError("No token provided")

        payload = decode_access_token(auth_header[len("Bearer "):])
        user_id = payload.get("user_id")
        if user_id is None:
            raise AuthenticationError("Invalid token payload")

        user = db.session.get(User, user_id)
        if not user:
            raise AuthenticationError("User no longer exists")

        g.user_id = user.id
        g.user_email = user.email
        return view(*args, **kwargs)

    return wrapper
