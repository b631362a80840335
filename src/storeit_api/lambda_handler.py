"""Lambda entry point: the FastAPI app wrapped by Mangum."""
from mangum import Mangum

from storeit_api.main import create_app

app = create_app()

# API Gateway and function URL events are translated to ASGI requests
handler = Mangum(app, lifespan="off")

lambda_handler = handler
