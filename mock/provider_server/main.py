from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
import os
import secrets

app = FastAPI(title="Mock Payment Provider", version="1.0.0")
CHECKOUT_BASE = os.getenv("MOCK_CHECKOUT_BASE", "http://localhost:8001/checkout")
PAYMENTS = {}


@app.get("/health")
def health(): return {"status": "ok"}


@app.post("/v2/payments", status_code=201)
async def create_payment(request: Request):
    if not request.headers.get("authorization", "").startswith("Bearer "):
        raise HTTPException(status_code=401, detail="missing api key")
    body = await request.json()
    if "amount" not in body or "description" not in body:
        raise HTTPException(status_code=422, detail="amount and description are required")
    payment_id = "tr_" + secrets.token_hex(5)
    PAYMENTS[payment_id] = {
        "resource": "payment",
        "id": payment_id,
        "status": "open",
        "amount": body["amount"],
        "description": body["description"],
        "method": body.get("method"),
        "metadata": body.get("metadata"),
        "redirectUrl": body.get("redirectUrl"),
        "webhookUrl": body.get("webhookUrl"),
        "_links": {"checkout": {"href": f"{CHECKOUT_BASE}/{payment_id}", "type": "text/html"}},
    }
    return JSONResponse(status_code=201, content=PAYMENTS[payment_id])


@app.get("/v2/payments/{payment_id}")
def get_payment(payment_id: str):
    if payment_id not in PAYMENTS:
        raise HTTPException(status_code=404, detail="payment not found")
    return PAYMENTS[payment_id]


# Test hook: simulate the payer completing, abandoning or failing checkout
@app.post("/v2/payments/{payment_id}/status")
async def set_status(payment_id: str, request: Request):
    if payment_id not in PAYMENTS:
        raise HTTPException(status_code=404, detail="payment not found")
    body = await request.json()
    PAYMENTS[payment_id]["status"] = body["status"]
    return PAYMENTS[payment_id]
