# bookstore/main.py
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware

from .cart.router import router as cart_router
from .catalog.router import router as catalog_router
from .catalog.store import CatalogStore, CatalogUnavailableError
from .config import Settings
from .storage import MemoryStorage

logger = logging.getLogger("bookstore")


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _context(request: Request) -> str:
    return f"{request.method} {request.url.path} params={dict(request.query_params)}"


def _validation_summary(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts)


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        logger.warning("%s -> %s: %s", _context(request), exc.status_code, exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)})

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        summary = _validation_summary(exc)
        logger.warning("%s -> 400: %s", _context(request), summary)
        return JSONResponse(status_code=400, content={"message": "Invalid request", "error": summary})

    @app.exception_handler(CatalogUnavailableError)
    async def catalog_unavailable(request: Request, exc: CatalogUnavailableError):
        logger.error("%s -> 500: %s", _context(request), exc)
        return JSONResponse(status_code=500, content={"message": "Failed to fetch catalog data"})

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s", _context(request))
        return JSONResponse(status_code=500, content={"message": "Internal server error"})


def create_app(settings: Optional[Settings] = None, catalog: Optional[CatalogStore] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Bookstore storefront",
        description=(
            "Catalogue browsing, faceted search, session cart and checkout "
            "backed by a commerce API with a local sample-data fallback."
        ),
        version="1.0.0",
    )
    app.state.settings = settings
    app.state.catalog = catalog or CatalogStore(settings)
    app.state.storage = MemoryStorage()

    app.add_middleware(SessionMiddleware, secret_key=settings.session_secret, same_site="lax")
    register_error_handlers(app)

    @app.get("/")
    @app.get("/health")
    def health_check():
        return {"status": "ok"}

    app.include_router(catalog_router)
    app.include_router(cart_router)

    if settings.upstream_enabled:
        logger.info("Serving catalogue from %s (%s)", settings.commerce_api_url, settings.environment)
    else:
        logger.info("No commerce API key configured; serving sample catalogue")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
