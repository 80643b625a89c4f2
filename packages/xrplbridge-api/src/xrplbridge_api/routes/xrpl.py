from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Request
from xrplbridge_api.dependencies import get_ledger
from xrplbridge_api.models import AccountInfoRequest, SendRequest
from xrplbridge_sdk import LedgerGateway, address_from_seed

router = APIRouter()


@router.post("/xrpl/account-info")
async def account_info(
    body: AccountInfoRequest, ledger: LedgerGateway = Depends(get_ledger)
) -> dict:
    address = body.address

    if not address and body.xrpl_seed is not None:
        address = address_from_seed(body.xrpl_seed.get_secret_value())

    if not address:
        raise HTTPException(status_code=400, detail="Address or XRPL seed is required")

    snapshot = await ledger.get_account_snapshot(address)

    rlusd_balance = Decimal("0")
    if snapshot.exists:
        rlusd_balance = await ledger.get_balance(address, ledger.stablecoin)

    return {
        "success": True,
        "data": {
            "address": address,
            "account_exists": snapshot.exists,
            "xrp_balance": str(snapshot.native_balance),
            "rlusd_balance": str(rlusd_balance),
        },
    }


@router.get("/xrpl/balance/{address}")
async def balance(address: str, ledger: LedgerGateway = Depends(get_ledger)) -> dict:
    amount = await ledger.get_balance(address, ledger.stablecoin)

    return {"balance": str(amount)}


@router.post("/xrpl/send")
async def send(
    body: SendRequest,
    request: Request,
    ledger: LedgerGateway = Depends(get_ledger),
) -> dict:
    config = request.app.state.server_config

    if body.amount > config.max_transfer_amount:
        raise HTTPException(
            status_code=400,
            detail=(
                f"Amount {body.amount} RLUSD exceeds per-transfer limit "
                f"of {config.max_transfer_amount} RLUSD"
            ),
        )

    receipt = await ledger.send(
        body.sender_seed.get_secret_value(),
        body.destination_address,
        body.amount,
        body.destination_tag,
    )

    return receipt.model_dump()
