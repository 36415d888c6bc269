from college_notes.core.config import get_settings
from college_notes.core.errors import register_error_handlers
from college_notes.core.logging import configure_logging
from college_notes.core.middleware import RequestIdMiddleware
from college_notes.core.pubsub import InMemoryBroker
from college_notes.api.v1.router import v1_router
from college_notes.storage.object_store import S3ObjectStore

from fastapi import FastAPI


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
    )

    app.state.settings = settings
    app.state.broker = InMemoryBroker()
    app.state.object_store = S3ObjectStore.from_settings(settings)

    # Middleware: Request ID
    app.add_middleware(RequestIdMiddleware, header_name=settings.request_id_header)

    register_error_handlers(app)

    # API v1
    app.include_router(v1_router, prefix=settings.api_prefix)

    return app


app = create_app()
