from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from ..core.errors import InvoiceAutomationError
from ..core.logging import setup_logging
from ..core.config import settings
from .routers import health, invoice

logger = setup_logging()
app = FastAPI(title="Invoice Automation")


@app.exception_handler(InvoiceAutomationError)
async def invoice_error_handler(request: Request, exc: InvoiceAutomationError):
    if exc.status_code >= 500:
        logger.error("Request failed", path=request.url.path, error=exc.message, details=exc.details)
    else:
        logger.warning("Request rejected", path=request.url.path, error=exc.message, status=exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Add custom exception handler for validation errors
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error("Validation error", errors=str(exc.errors()))
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(exc.errors())},
    )


# Configure CORS to allow frontend access
# CORS_ORIGINS can be set in .env as comma-separated list
# Example: CORS_ORIGINS=http://localhost:3000,https://your-frontend.com
allowed_origins = [origin.strip() for origin in settings.cors_origins.split(",")]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(invoice.router)
