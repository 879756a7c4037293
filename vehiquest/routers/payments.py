"""
Endpoint that prepares a card payment before a booking is submitted.
"""
from fastapi import APIRouter, Depends

from ..auth import Identity, get_current_identity, get_settings_dependency
from ..config import Settings
from ..payments import create_payment_intent
from ..schemas import PaymentIntentCommand, PaymentIntentOut

router = APIRouter(tags=["payments"])


@router.post("/create-payment-intent", response_model=PaymentIntentOut)
async def payment_intent(
    command: PaymentIntentCommand,
    identity: Identity = Depends(get_current_identity),
    settings: Settings = Depends(get_settings_dependency),
):
    client_secret = await create_payment_intent(command.price, settings)
    return {"clientSecret": client_secret}
