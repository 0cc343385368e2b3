import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from core.config import CORS_ORIGINS
from database import create_tables, engine
from middleware.route_guard import RouteGuardMiddleware
from routers import (
    auth_router, api_auth_router, account_router, storefront_router,
    admin_router, catalog_router, product_router,
)
import uvicorn

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables()
    logger.info("Database tables ready")
    yield
    await engine.dispose()


app = FastAPI(title="StackPilot Storefront API", lifespan=lifespan)

app.add_middleware(RouteGuardMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(storefront_router.router)
app.include_router(auth_router.router)
app.include_router(api_auth_router.router)
app.include_router(account_router.router)
app.include_router(admin_router.router)
app.include_router(catalog_router.router)
app.include_router(product_router.router)

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
