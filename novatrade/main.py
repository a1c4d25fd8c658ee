import asyncio
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from novatrade.api.routes import router as api_router
from novatrade.jobs.oracle_sync import auto_sync_loop
from novatrade.jobs.ticker import clock_loop, price_tick_loop
from novatrade.logging_setup import setup_logging
from novatrade.state import engine, oracle, repository, settings
from novatrade.trading.errors import PersistenceFailure, TradingError

setup_logging(settings.log_level)
log = logging.getLogger("main")

app = FastAPI(title="NovaTrade Market API", version="0.1.0")
app.include_router(api_router)

_tasks = []


@app.exception_handler(TradingError)
async def _trading_error(request: Request, exc: TradingError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.__class__.__name__, "detail": exc.message},
    )


@app.exception_handler(PersistenceFailure)
async def _persistence_failure(request: Request, exc: PersistenceFailure):
    return JSONResponse(status_code=503, content={"error": "PersistenceFailure", "detail": str(exc)})


@app.on_event("startup")
async def _startup():
    await engine.load_users()

    # price simulation + order evaluation
    _tasks.append(asyncio.create_task(price_tick_loop(engine, settings.tick_interval_seconds)))

    # market hours
    _tasks.append(asyncio.create_task(clock_loop(engine, settings.clock_interval_seconds)))

    if settings.auto_sync_seconds > 0:
        _tasks.append(
            asyncio.create_task(
                auto_sync_loop(
                    engine,
                    oracle,
                    interval=settings.auto_sync_seconds,
                    batch_size=settings.oracle_batch_size,
                    timeout_s=settings.oracle_timeout_seconds,
                )
            )
        )
    log.info("Started %d background tasks", len(_tasks))


@app.on_event("shutdown")
async def _shutdown():
    for task in _tasks:
        task.cancel()
    _tasks.clear()
    await oracle.close()
    repository.close()


@app.get("/health")
def health():
    return {
        "status": "ok",
        "app_env": settings.app_env,
        "oracle_config": settings.oracle_provider,
        "oracle_loaded": oracle.__class__.__name__,
        "store_backend": settings.store_backend,
        "market_open": engine.session.is_open,
        "users": len(engine.users),
    }
