from flask import Flask
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker, scoped_session
from dotenv import load_dotenv
from datetime import timedelta
from typing import Optional, Dict, Any
import os

load_dotenv()

db_engine = None
SessionLocal = None
jwt = JWTManager()


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'on')


def _load_config(app: Flask, overrides: Optional[Dict[str, Any]]):
    app.config.update(
        JWT_SECRET_KEY=os.getenv('JWT_SECRET_KEY', 'dev-secret'),
        JWT_ACCESS_TOKEN_EXPIRES=timedelta(hours=int(os.getenv('JWT_EXPIRES_HOURS', '168'))),
        DATABASE_URL=os.getenv('DATABASE_URL', 'sqlite:///dev.db'),
        # textual "admin*" super-user convention of existing role data
        AUTHZ_LEGACY_ADMIN_PREFIX=_env_flag('AUTHZ_LEGACY_ADMIN_PREFIX', True),
        MAX_CONTENT_LENGTH=int(os.getenv('IMPORT_MAX_BYTES', str(5 * 1024 * 1024))),
    )
    if overrides:
        # tests and embedding callers win over the environment
        app.config.update(overrides)


def _make_engine(db_url: str):
    if db_url.endswith(':memory:'):
        # every session must see the same in-memory database
        return create_engine(
            db_url,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(db_url, future=True, pool_pre_ping=True)


def _error_payload(status: int, title: str, code: str, detail: str) -> Dict[str, Any]:
    return {'error': {'status': status, 'title': title, 'code': code, 'detail': detail}}


def create_app(config: Optional[Dict[str, Any]] = None):
    global db_engine, SessionLocal
    app = Flask(__name__)
    _load_config(app, config)

    db_engine = _make_engine(app.config['DATABASE_URL'])
    SessionLocal = scoped_session(sessionmaker(bind=db_engine, expire_on_commit=False, autoflush=False))

    jwt.init_app(app)

    from .routes.auth import auth_bp
    from .routes.roles import roles_bp
    from .routes.permissions import permissions_bp
    from .routes.resources import admin_resources_bp, datasources_bp
    app.register_blueprint(auth_bp, url_prefix='/admin')
    app.register_blueprint(roles_bp, url_prefix='/admin/roles')
    app.register_blueprint(permissions_bp, url_prefix='/admin/permissions')
    app.register_blueprint(admin_resources_bp, url_prefix='/admin')
    app.register_blueprint(datasources_bp, url_prefix='/api/datasources')

    @app.route('/healthz')
    def health():
        return {'status': 'ok'}

    @app.teardown_appcontext
    def remove_session(exc=None):
        # One session per request; nothing survives into the next one.
        if SessionLocal is not None:
            SessionLocal.remove()

    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            payload = _error_payload(e.code, e.name, type(e).__name__, e.description)
            required_code = getattr(e, 'required_code', None)
            if required_code:
                payload['error']['required_permission'] = required_code
            return payload, e.code
        app.logger.exception('Unhandled exception')
        if SessionLocal is not None:
            SessionLocal.rollback()
        return _error_payload(500, 'Internal Server Error', 'InternalServerError', 'Unexpected error'), 500

    return app


def get_db():
    return SessionLocal()
