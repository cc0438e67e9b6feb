"""Paid press router: /api/press-sbtc (discovery + press) and /.well-known/x402.json."""

from fastapi import APIRouter, Header
from fastapi.responses import JSONResponse
from starlette.requests import Request

from button.deps import get_game, get_server, read_json_object
from button.errors import LatePayment, PaymentFailed, PressRejected
from button.models import PaidPressRequest
from button.payment import payment_requirements, well_known

router = APIRouter()


def _failure(error: Exception, code: str, **extra) -> JSONResponse:
    body = {"success": False, "error": str(error), "code": code}
    body.update(extra)
    return JSONResponse(status_code=400, content=body)


@router.get("/api/press-sbtc")
async def paid_press_discovery(request: Request):
    return payment_requirements(get_server(request).config)


@router.post("/api/press-sbtc")
async def paid_press(request: Request, x_payment: str = Header(default="")):
    game = get_game(request)
    if not x_payment:
        return JSONResponse(status_code=402, content=await game.payment_required())

    # A bad or missing body means "Anonymous".
    req = PaidPressRequest.model_validate(await read_json_object(request))

    try:
        return await game.press_paid(req.player, x_payment, wallet_address=req.wallet_address)
    except PressRejected as e:
        return _failure(e, e.code, round=e.round_number)
    except PaymentFailed as e:
        return _failure(e, e.code, reason=e.reason)
    except LatePayment as e:
        return _failure(e, e.code, tx_id=e.tx_id, round=e.round_number)


@router.get("/.well-known/x402.json")
async def x402_discovery(request: Request):
    return well_known(get_server(request).config)
