"""
SafeMed - Webhook Receiver
"""

import logging

from fastapi import APIRouter, HTTPException, Request, status

from app.schemas import WebhookAck

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])


@router.post("/webhook", response_model=WebhookAck)
async def receive_webhook(request: Request):
    """Accept any JSON payload from the EMR and log it"""
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Webhook body must be JSON"
        )

    logger.info(f"Pharmacovigilance webhook received: {payload}")
    return WebhookAck()
