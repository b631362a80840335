from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """
    Health check endpoint for monitoring API status. Requires no token.

    Reports the deployment mode and the storage resources the API is bound to.
    """
    settings = request.app.state.settings
    return {
        "status": "ok",
        "deployment_mode": settings.deployment_mode,
        "components": {
            "bucket": settings.s3_bucket_name,
            "table": settings.dynamodb_table_name,
        },
    }
