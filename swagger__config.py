"""
Swagger/OpenAPI configuration for the Punt de Donació API
"""

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec",
            "route": "/apispec.json",
            "rule_filter": lambda rule: True,
            "model_filter": lambda tag: True,
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/api/docs",
}

SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "Punt de Donació API",
        "description": "REST API for blood donors: appointment booking, donation history, campaigns and token rewards",
        "contact": {"email": "suport@puntdonacio.cat"},
        "version": "1.0.0",
    },
    "host": "",
    "basePath": "/",
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": 'JWT Authorization header using the Bearer scheme. Example: "Authorization: Bearer {token}"',
        }
    },
    "security": [{"Bearer": []}],
    "tags": [
        {"name": "Authentication", "description": "Registration, login and tokens"},
        {"name": "Users", "description": "Profile and settings"},
        {"name": "Donation Centers", "description": "Center search and details"},
        {"name": "Appointments", "description": "Appointment booking and management"},
        {"name": "Donations", "description": "Donation history and analytics"},
        {"name": "Campaigns", "description": "Donation campaigns"},
        {"name": "Rewards", "description": "Reward catalogue and redemptions"},
        {"name": "Utility", "description": "Health checks"},
    ],
    "definitions": {
        "Error": {
            "type": "object",
            "properties": {
                "success": {"type": "boolean", "example": False},
                "error": {"type": "string"},
                "code": {"type": "string", "example": "VALIDATION_ERROR"},
                "field": {"type": "string"},
            },
        },
        "Success": {
            "type": "object",
            "properties": {
                "success": {"type": "boolean", "example": True},
                "data": {"type": "object"},
                "message": {"type": "string"},
            },
        },
        "Appointment": {
            "type": "object",
            "properties": {
                "id": {"type": "integer"},
                "userId": {"type": "integer"},
                "donationCenterId": {"type": "integer"},
                "donationType": {
                    "type": "string",
                    "enum": ["sang_total", "plaquetes", "plasma", "medul·la"],
                },
                "date": {"type": "string", "format": "date"},
                "time": {"type": "string", "example": "10:30"},
                "status": {"type": "string", "example": "confirmed"},
                "confirmationCode": {"type": "string", "example": "APT-1a2b3c4d5e"},
                "notes": {"type": "string"},
            },
        },
        "Reward": {
            "type": "object",
            "properties": {
                "id": {"type": "integer"},
                "title": {"type": "string"},
                "category": {"type": "string"},
                "tokensRequired": {"type": "integer"},
                "status": {
                    "type": "string",
                    "enum": ["available", "low_stock", "out_of_stock", "expired"],
                },
                "stockAvailable": {"type": "integer"},
            },
        },
        "RewardTransaction": {
            "type": "object",
            "properties": {
                "id": {"type": "integer"},
                "rewardId": {"type": "integer"},
                "tokensSpent": {"type": "integer"},
                "redemptionCode": {"type": "string", "example": "RWD-1a2b3c4d5e6f"},
                "status": {"type": "string", "example": "confirmed"},
                "expiresAt": {"type": "string", "format": "date-time"},
            },
        },
    },
}
