from flask import Blueprint, request
from sqlalchemy import select

# math functions to calculate coordinate distance
from math import radians, sin, cos, sqrt, atan2

from app.extensions import db
from app.models import DonationCenter
from app.utils.errors import NotFoundError, ValidationError
from app.utils.responses import success_response
from app.utils.serializers import serialize_center

centers_bp = Blueprint("donation_centers", __name__, url_prefix="/api/donation-centers")
donation_types_bp = Blueprint("donation_types", __name__, url_prefix="/api/donation-types")

EARTH_RADIUS_KM = 6371.0
DEFAULT_RADIUS_M = 10000
NEARBY_LIMIT = 20

DONATION_TYPE_CATALOGUE = [
    {
        "id": "sang_total",
        "name": "Sang Total",
        "description": "Donació de sang completa que inclou glòbuls vermells, plaquetes i plasma",
        "duration": "30-45 min",
        "tokens": 15,
        "requirements": [
            "Edat entre 18 i 65 anys",
            "Pes mínim 50 kg",
            "Estar en bon estat de salut",
        ],
        "process": [
            "Registre i questionari mèdic",
            "Prova d'hemoglobina",
            "Extracció (8-10 minuts)",
            "Descans i refrigeri",
        ],
    },
    {
        "id": "plaquetes",
        "name": "Plaquetes",
        "description": "Donació específica de plaquetes mitjançant afèresi",
        "duration": "90-120 min",
        "tokens": 20,
        "requirements": [
            "Haver donat sang prèviament",
            "Tenir un bon nombre de plaquetes",
            "Disponibilitat de temps",
        ],
        "process": [
            "Avaluació prèvia",
            "Connexió a màquina d'afèresi",
            "Separació de plaquetes",
            "Retorn de la resta de components",
        ],
    },
    {
        "id": "plasma",
        "name": "Plasma",
        "description": "Donació de la part líquida de la sang",
        "duration": "45-60 min",
        "tokens": 18,
        "requirements": [
            "Edat entre 18 i 65 anys",
            "Pes mínim 50 kg",
            "No haver donat plasma en els últims 15 dies",
        ],
        "process": [
            "Preparació i proves",
            "Extracció mitjançant plasmafèresi",
            "Separació del plasma",
            "Descans",
        ],
    },
    {
        "id": "medul·la",
        "name": "Medul·la Òssia",
        "description": "Registre com a donant de medul·la òssia",
        "duration": "Variable",
        "tokens": 50,
        "requirements": [
            "Edat entre 18 i 40 anys",
            "Estar en perfecte estat de salut",
            "Compromís a llarg termini",
        ],
        "process": [
            "Registre al REDMO",
            "Prova de compatibilitat",
            "Si hi ha coincidència: extracció",
            "Seguiment post-donació",
        ],
    },
]


def haversine_km(lat1, lng1, lat2, lng2):
    dlat = radians(lat2 - lat1)
    dlon = radians(lng2 - lng1)
    a = sin(dlat / 2) ** 2 + cos(radians(lat1)) * cos(radians(lat2)) * sin(dlon / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))
    return EARTH_RADIUS_KM * c


@centers_bp.route("", methods=["GET"])
def get_donation_centers():
    """
    Open donation centers, sorted by name
    ---
    tags:
      - Donation Centers
    security: []
    responses:
      200:
        description: List of donation centers
    """
    centers = db.session.scalars(
        select(DonationCenter)
        .where(DonationCenter.open_now.is_(True))
        .order_by(DonationCenter.name)
    ).all()
    return success_response([serialize_center(c) for c in centers])


@centers_bp.route("/nearby", methods=["GET"])
def get_nearby_donation_centers():
    """
    Open donation centers within a radius of a point, nearest first
    ---
    tags:
      - Donation Centers
    security: []
    parameters:
      - in: query
        name: lat
        type: number
        required: true
      - in: query
        name: lng
        type: number
        required: true
      - in: query
        name: radius
        type: integer
        description: Radius in metres (default 10000)
    responses:
      200:
        description: Up to 20 centers with distanceKm
      400:
        description: Missing or invalid coordinates
    """
    lat = request.args.get("lat")
    lng = request.args.get("lng")
    if not lat or not lng:
        raise ValidationError("Latitude and longitude are required")

    try:
        user_lat = float(lat)
        user_lng = float(lng)
        radius_m = int(request.args.get("radius", DEFAULT_RADIUS_M))
    except (TypeError, ValueError):
        raise ValidationError("Invalid coordinates")

    centers = db.session.scalars(
        select(DonationCenter).where(DonationCenter.open_now.is_(True))
    ).all()

    nearby = []
    for center in centers:
        distance = haversine_km(user_lat, user_lng, center.latitude, center.longitude)
        if distance * 1000 <= radius_m:
            nearby.append((distance, center))

    nearby.sort(key=lambda pair: pair[0])
    return success_response(
        [serialize_center(c, distance_km=d) for d, c in nearby[:NEARBY_LIMIT]]
    )


@centers_bp.route("/<int:center_id>", methods=["GET"])
def get_donation_center(center_id):
    center = db.session.get(DonationCenter, center_id)
    if not center:
        raise NotFoundError("Donation center not found")
    return success_response(serialize_center(center))


@donation_types_bp.route("", methods=["GET"])
def get_donation_types():
    return success_response(DONATION_TYPE_CATALOGUE)
