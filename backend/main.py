import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from backend.core import config
from backend.core.errors import register_error_handlers
from backend.database import Database
from backend.routes import appointment_routes, auth_routes, availability_routes

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )


def create_app(database: Database | None = None) -> FastAPI:
    config.validate_runtime_config()

    app = FastAPI(title='Campus Wellness API')
    app.state.database = database or Database(config.DATABASE_URL, echo=config.DATABASE_ECHO)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )
    register_error_handlers(app)

    @app.on_event('startup')
    def initialize_database() -> None:
        try:
            app.state.database.create_schema()
        except SQLAlchemyError:
            logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')

    @app.on_event('shutdown')
    def close_database() -> None:
        app.state.database.dispose()

    @app.get('/')
    def root():
        return {'success': True, 'status': 'Campus Wellness API Running'}

    app.include_router(auth_routes.router, prefix='/auth')
    app.include_router(appointment_routes.router, prefix='/appointments')
    app.include_router(availability_routes.router, prefix='/counselors')

    return app


configure_logging()
app = create_app()
