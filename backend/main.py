from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
from contextlib import asynccontextmanager

from db import create_db_and_tables, engine
from db import migrate
from routes import meli_oauth
from routes import meli_catalog
from routes import meli_publish
from routes import meli_pricing
from routes import calculations

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # On startup
    create_db_and_tables()
    migrate.ensure_schema(engine)  # Columns added after the first release
    yield

# Initialize FastAPI app
app = FastAPI(
    title="Meli Lister API",
    description="Mercado Livre catalog publishing and price management API",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware - restrict to localhost only
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global exception handler for consistent error responses
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": True,
            "detail": exc.detail,
            "status_code": exc.status_code
        }
    )

@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": True,
            "detail": "Internal server error",
            "status_code": 500
        }
    )

# Include routes
app.include_router(meli_oauth.router)
app.include_router(meli_catalog.router)
app.include_router(meli_publish.router)
app.include_router(meli_pricing.router)
app.include_router(calculations.router)


@app.get("/")
async def root():
    return {"message": "Meli Lister API is running"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000)
