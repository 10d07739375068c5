from app.api.booking.appointments import appointments_bp
from app.api.campaigns.campaigns import campaigns_bp
from app.api.centers.details import centers_bp, donation_types_bp
from app.api.donations.history import donations_bp
from app.api.loyalty.rewards import rewards_bp
from app.api.users.profile import profile_bp
from app.routes.auth import auth_bp
from flask import Flask
from flask_cors import CORS
from dotenv import load_dotenv
from flasgger import Swagger
from swagger__config import SWAGGER_CONFIG, SWAGGER_TEMPLATE
import datetime
import os

load_dotenv()
from app.config import Config  # noqa: E402
from app.extensions import db  # noqa: E402
from app.utils.errors import register_error_handlers  # noqa: E402


def create_app():
    app = Flask(__name__)
    try:
        app.config.from_object(Config)
        app.logger.setLevel(app.config["LOG_LEVEL"])
        app.json.ensure_ascii = False

        CORS(app, origins=app.config["CORS_ORIGIN"], supports_credentials=True)

        db.init_app(app)

        # Determine host based on environment
        host = os.environ.get("API_HOST", "127.0.0.1:5000")
        swagger_template = SWAGGER_TEMPLATE.copy()
        swagger_template["host"] = host
        Swagger(app, config=SWAGGER_CONFIG, template=swagger_template)

        register_error_handlers(app)

        blueprints = [
            auth_bp,
            profile_bp,
            centers_bp,
            donation_types_bp,
            appointments_bp,
            donations_bp,
            campaigns_bp,
            rewards_bp,
        ]

        for bp in blueprints:
            app.register_blueprint(bp)
            if not app.config["TESTING"]:
                print(f"  ✓ {bp.name} registered")

        @app.route("/api/health")
        def health():
            """
            API status
            ---
            tags:
              - Utility
            security: []
            responses:
              200:
                description: API is running
                schema:
                  type: object
                  properties:
                    status:
                      type: string
                    timestamp:
                      type: string
                    environment:
                      type: string
            """
            return {
                "status": "ok",
                "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
                "environment": app.config["ENVIRONMENT"],
            }, 200

    except Exception as e:
        print(f"Error during app creation: {e}")
        import traceback

        print(f"Full traceback: {traceback.format_exc()}")
        raise

    if not app.config["TESTING"]:
        print(f"Total routes registered: {len(list(app.url_map.iter_rules()))}")
        print("Swagger initialized - Access at /api/docs")
    return app


app = create_app()


if __name__ == "__main__":
    # Create a .env containing:
    #       DATABASE_URL=mysql+pymysql://<USER>:<PASSWORD>@<HOST>:<PORT>/puntdonacio
    #       SECRET_KEY=<random string>

    port = int(os.environ.get("PORT", 5000))
    app.run(
        host="0.0.0.0", port=port, debug=os.environ.get("FLASK_ENV") != "production"
    )
