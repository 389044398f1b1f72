"""
AWS Lambda entrypoint for the changelog generator

API Gateway and Function URL events are served by the FastAPI app through Mangum.
Mangum buffers streamed bodies, so a Lambda response carries the whole changelog
(including any trailing error marker) in one payload.
"""

import logging
from typing import Any, Callable, Dict

from fastapi import FastAPI
from mangum import Mangum

from changelog_api.main import app

logger = logging.getLogger(__name__)

LambdaHandler = Callable[[Dict[str, Any], Any], Dict[str, Any]]


def create_lambda_handler(asgi_app: FastAPI) -> LambdaHandler:
    asgi_handler = Mangum(asgi_app, lifespan="auto")

    def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
        path = event.get("rawPath") or event.get("path") or "/"
        logger.info(f"Lambda invoked for {path}")
        return asgi_handler(event, context)

    return lambda_handler


lambda_handler = create_lambda_handler(app)
