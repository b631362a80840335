"""FastAPI dependencies: settings, adapters, services and the authenticated caller."""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from storeit_api.database import MetadataTable
from storeit_api.errors import UnauthorizedError
from storeit_api.identity.directory import BaseDirectory, CognitoDirectory
from storeit_api.identity.tokens import Identity, TokenVerifier, resolve_identity
from storeit_api.services.auth import AuthService
from storeit_api.services.files import FileService
from storeit_api.services.sharing import SharingService
from storeit_api.services.uploads import UploadSessionManager
from storeit_api.settings import Settings

bearer_scheme = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_table(settings: Settings = Depends(get_app_settings)) -> MetadataTable:
    return MetadataTable(table_name=settings.dynamodb_table_name)


def get_directory(settings: Settings = Depends(get_app_settings)) -> BaseDirectory:
    return CognitoDirectory(settings)


def get_token_verifier(request: Request) -> TokenVerifier:
    return request.app.state.token_verifier


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise UnauthorizedError("Missing or invalid Authorization header")
    return credentials.credentials


def get_current_identity(
    token: str = Depends(get_bearer_token),
    verifier: TokenVerifier = Depends(get_token_verifier),
    directory: BaseDirectory = Depends(get_directory),
) -> Identity:
    claims = verifier.verify(token)
    return resolve_identity(claims, directory)


def get_file_service(
    table: MetadataTable = Depends(get_table),
    settings: Settings = Depends(get_app_settings),
) -> FileService:
    return FileService(table, settings)


def get_upload_manager(
    table: MetadataTable = Depends(get_table),
    settings: Settings = Depends(get_app_settings),
) -> UploadSessionManager:
    return UploadSessionManager(table, settings.s3_bucket_name)


def get_sharing_service(
    table: MetadataTable = Depends(get_table),
    directory: BaseDirectory = Depends(get_directory),
    files: FileService = Depends(get_file_service),
) -> SharingService:
    return SharingService(table, directory, files)


def get_auth_service(
    directory: BaseDirectory = Depends(get_directory),
    table: MetadataTable = Depends(get_table),
    settings: Settings = Depends(get_app_settings),
) -> AuthService:
    return AuthService(directory, table, settings)
