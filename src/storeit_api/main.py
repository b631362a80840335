from textwrap import dedent
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException as StarletteHTTPException

from storeit_api.aws_clients import AWSClientManager
from storeit_api.errors import (
    StoreItError,
    handle_broad_exceptions,
    handle_http_errors,
    handle_request_validation_errors,
    handle_storeit_errors,
)
from storeit_api.identity.tokens import RemoteJWKSProvider, TokenVerifier
from storeit_api.logging_config import configure_logging
from storeit_api.routers.auth import router as auth_router
from storeit_api.routers.files import router as files_router
from storeit_api.routers.health import router as health_router
from storeit_api.routers.sharing import router as sharing_router
from storeit_api.routers.uploads import router as uploads_router
from storeit_api.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, token_verifier: Optional[TokenVerifier] = None) -> FastAPI:
    """Create a FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)
    AWSClientManager().configure(settings)

    app = FastAPI(
        title="StoreIt Files API",
        summary="Store, browse and share personal files",
        version="v1",
        description=dedent(
            """\
        Files live in S3, their metadata in a single DynamoDB table and
        accounts in a Cognito user pool. Every route except `/health` and
        `/auth/*` needs a Cognito id or access token as a Bearer token.
        """
        ),
        docs_url="/docs",
        generate_unique_id_function=custom_generate_unique_id,
    )

    # last added runs outermost: CORS wraps the catch-all
    app.middleware("http")(handle_broad_exceptions)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials="*" not in settings.cors_allow_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.token_verifier = token_verifier or TokenVerifier(
        RemoteJWKSProvider(settings.jwks_url),
        issuer=settings.cognito_issuer,
        client_id=settings.cognito_client_id,
    )

    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router, tags=["auth"])
    app.include_router(uploads_router, tags=["uploads"])
    # shared-with-me must be matched before /files/{file_id}
    app.include_router(sharing_router, tags=["sharing"])
    app.include_router(files_router, tags=["files"])

    app.add_exception_handler(StoreItError, handle_storeit_errors)
    app.add_exception_handler(RequestValidationError, handle_request_validation_errors)
    app.add_exception_handler(StarletteHTTPException, handle_http_errors)

    logger.info(f"Created app in {settings.deployment_mode} mode")
    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    return f"{route.tags[0]}-{route.name}"


if __name__ == "__main__":
    import uvicorn

    app = create_app()
    uvicorn.run(app, host="0.0.0.0", port=8000)
