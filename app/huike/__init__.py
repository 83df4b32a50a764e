import logging

from flask import Flask, g, request
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException

from app.huike.auth import load_current_user
from app.huike.cache import cache_from_config
from app.huike.captcha import SignedCaptchaService
from app.huike.config import load_config
from app.huike.constants import CAPTCHA_CACHE, MAIL_TEMPLATE_CACHE
from app.huike.db import init_db, teardown_db_session
from app.huike.errors import INTERNAL_SERVER_ERROR, ServiceException
from app.huike.routes import bp as routes_bp
from app.huike.modules.auth.admin import bp as auth_bp, captcha_bp
from app.huike.modules.mail.admin import bp as mail_template_bp
from app.huike.modules.infra.admin import bp as file_bp
from app.huike.utils import error

logger = logging.getLogger(__name__)


def create_app(config_overrides: dict | None = None) -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    if config_overrides:
        app.config.update(config_overrides)
    app.json.ensure_ascii = False

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")
        if not app.config.get("CAPTCHA_ENABLE"):
            app.logger.warning("CAPTCHA_ENABLE is off in production; logins are not captcha-protected.")

    init_db(app)

    # Process-wide caches; the mail template cache is cleared as a whole on change
    app.extensions["mail_template_cache"] = cache_from_config(app.config, MAIL_TEMPLATE_CACHE)
    app.extensions["captcha_service"] = SignedCaptchaService(
        app.config["SECRET_KEY"],
        cache_from_config(app.config, CAPTCHA_CACHE, ttl=app.config["CAPTCHA_TOKEN_MAX_AGE"]),
        max_age=app.config["CAPTCHA_TOKEN_MAX_AGE"],
    )

    # Storage health check (fail loudly on misconfiguration)
    if app.config.get("STORAGE_BACKEND") == "s3":
        missing_s3 = []
        for key in ("S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY"):
            if not app.config.get(key):
                missing_s3.append(key)
        if missing_s3:
            app.logger.error("STORAGE CONFIG ERROR: Missing required S3 env vars: %s", ", ".join(missing_s3))
        else:
            try:
                from app.huike.storage import S3Storage, storage_from_config

                storage = storage_from_config(app.config)
                if isinstance(storage, S3Storage):
                    storage.head_bucket()
                    app.logger.info("Storage health check PASSED: S3 bucket '%s' accessible", storage.bucket)
            except Exception as e:
                app.logger.error("STORAGE CONFIG ERROR: Cannot access S3 bucket: %s", e)

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/admin-api/system/auth")
    app.register_blueprint(captcha_bp, url_prefix="/admin-api/system/captcha")
    app.register_blueprint(mail_template_bp, url_prefix="/admin-api/system/mail-template")
    app.register_blueprint(file_bp, url_prefix="/admin-api/infra/file")

    app.before_request(load_current_user)
    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(ServiceException)
    def _service_exception(e: ServiceException):  # type: ignore[no-redef]
        app.logger.info(
            "Service error code=%s msg=%s path=%s request_id=%s",
            e.code,
            e.msg,
            request.path,
            getattr(g, "request_id", None),
        )
        return error(e.code, e.msg), 200

    @app.errorhandler(HTTPException)
    def _http_exception(e: HTTPException):  # type: ignore[no-redef]
        return error(e.code or 500, e.description or e.name), e.code or 500

    @app.errorhandler(Exception)
    def _unhandled(e: Exception):  # type: ignore[no-redef]
        app.logger.exception("Unhandled error (request_id=%s)", getattr(g, "request_id", None))
        return error(INTERNAL_SERVER_ERROR.code, INTERNAL_SERVER_ERROR.msg), 500

    logger.info("create_app() complete; app ready to serve")

    return app
