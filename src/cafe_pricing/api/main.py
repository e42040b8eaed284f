import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..config.settings import get_settings
from ..formatters import format_currency
from .state import billing_service, engine

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Cafe Pricing API",
    description="Session pricing and bill totals for the gaming cafe front desk",
    version="1.0.0"
)

# Enable CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


class PriceRequest(BaseModel):
    device_type: str
    player_count: int = Field(default=1, ge=1)
    minutes: float = Field(ge=0)
    hourly_rate: float = Field(default=0.0, ge=0)


class SessionsRequest(BaseModel):
    # Raw session records; parsed (and validated) by the engine
    sessions: List[Dict[str, Any]] = Field(default_factory=list)


class GenerateBillRequest(SessionsRequest):
    token_id: Optional[int] = None
    order_id: Optional[str] = None
    customer_id: Optional[int] = None


@app.get("/")
async def root():
    return {"status": "online", "message": "Cafe Pricing API Active"}


@app.get("/rate-card")
async def get_rate_card():
    return engine.rate_card.to_frame().to_dict(orient="records")


@app.get("/round/{minutes}")
async def round_minutes(minutes: int):
    return {
        "actual_minutes": minutes,
        "billed_minutes": engine.round_time_to_charge(minutes),
    }


@app.post("/price")
async def calculate_price(req: PriceRequest):
    charge = engine.quote(req.device_type, req.player_count, req.minutes, req.hourly_rate)
    return {
        "device_type": charge.device_type,
        "player_count": charge.player_count,
        "billed_minutes": charge.billed_minutes,
        "amount": charge.amount,
        "display": format_currency(charge.amount),
        "source": charge.source,
        "hourly_rate": engine.hourly_rate_for(charge.device_type, charge.player_count),
    }


@app.post("/sessions/cost")
async def session_cost(record: Dict[str, Any]):
    charge = engine.price_session(record)
    return jsonable_encoder(charge)


@app.post("/bills/total")
async def bill_total(req: SessionsRequest):
    summary = engine.summarize(req.sessions)
    return jsonable_encoder(summary)


@app.post("/bills/generate")
async def generate_bill(req: GenerateBillRequest):
    try:
        bill = billing_service.generate_bill(
            req.sessions,
            token_id=req.token_id,
            order_id=req.order_id,
            customer_id=req.customer_id,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    payload = jsonable_encoder(bill)
    payload["total"] = bill.total
    return payload


@app.get("/system/status")
async def get_status():
    settings = get_settings()
    validation = engine.rate_card.validate()
    return {
        "engine_active": True,
        "rate_card": str(settings.rate_card_csv),
        "device_types": engine.rate_card.device_types,
        "rate_card_valid": validation.valid,
        "errors": validation.errors,
        "warnings": validation.warnings,
    }
