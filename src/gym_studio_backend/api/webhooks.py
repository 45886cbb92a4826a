'''
Inbound webhook from the identity provider.
'''
from typing import Annotated, Any
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError

from ..common.config import settings
from ..common.logger import log
from ..common.security_utils import WebhookSignature, WebhookSignatureError
from ..models import webhook as webhook_models
from ..services.webhook_service import IdentityWebhookService

class WebhooksAPI:
    """
    The signature is checked against the raw body before anything is parsed.
    A verified event is always acknowledged with 200.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/api/webhooks",
            tags=["Webhooks"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/identity",
                self.identity_webhook,
                methods=["POST"],
                response_model=webhook_models.WebhookAck)

    async def identity_webhook(
        self,
        request: Request,
        webhook_service: Annotated[IdentityWebhookService, Depends(IdentityWebhookService)]
    ) -> Any:
        body = await request.body()
        try:
            WebhookSignature.verify(
                settings.IDENTITY_WEBHOOK_SECRET,
                request.headers,
                body,
                tolerance_seconds=settings.WEBHOOK_TOLERANCE_SECONDS
            )
        except WebhookSignatureError as e:
            log.warning(f"Rejected identity webhook: {e}")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook signature")

        try:
            event = webhook_models.IdentityEvent.model_validate_json(body)
        except ValidationError as e:
            log.warning(f"Malformed identity webhook payload: {e}")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook payload")

        return await webhook_service.handle_event(event)

# Instantiate the class and export its router
webhooks_api = WebhooksAPI()
router = webhooks_api.router
