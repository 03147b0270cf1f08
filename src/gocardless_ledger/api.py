from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .auth import limiter
from .ledger.api import router as ledger_router, session_router

app = FastAPI(title="GoCardless Ledger - Reference API")

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.include_router(session_router)
app.include_router(ledger_router)


@app.get("/health")
async def health():
    return {"ok": True}
