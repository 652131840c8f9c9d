import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.endpoints.settings import router as settings_router
from app.api.v1.endpoints.trendyol import router as trendyol_router
from app.core.config import settings
from app.core.errors import MarketplaceError
from app.core.logging_config import configure_logging

configure_logging(settings.log_level)
_logger = logging.getLogger(__name__)


app = FastAPI(title="Trendyol Marketplace Sync")

origins = [
    "http://localhost",
    "http://localhost:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MarketplaceError)
async def marketplace_error_handler(request: Request, exc: MarketplaceError):
    if exc.status_code >= 500:
        _logger.warning(f"{request.method} {request.url.path} failed: {exc.kind}: {exc.message}")
    else:
        _logger.info(f"{request.method} {request.url.path} rejected: {exc.kind}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.to_dict()},
    )


app.include_router(settings_router)
app.include_router(trendyol_router)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=5010)
