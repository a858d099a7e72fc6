import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from storefront.config import settings
from storefront.database import create_db_and_tables
from storefront.routes import (
    auth,
    cart,
    health,
    order_cancellation,
    orders,
    payments,
    products,
    returns,
    special_orders,
    special_returns,
    users,
)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Run DB creation ONLY in local
    if settings.ENV == "local":
        create_db_and_tables()
    yield

app = FastAPI(title=f"{settings.STORE_NAME} Storefront API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
app.include_router(users.router, prefix="/users", tags=["Users"])
app.include_router(products.router, prefix="/products", tags=["Products"])
app.include_router(cart.router, prefix="/cart", tags=["Cart"])
app.include_router(returns.router, tags=["Returns"])
app.include_router(orders.router, prefix="/orders", tags=["Orders"])
app.include_router(order_cancellation.router, tags=["Cancellation"])
app.include_router(payments.router, tags=["Payments"])
app.include_router(special_orders.router, prefix="/special-orders", tags=["Special Orders"])
app.include_router(special_returns.router, tags=["Special Returns"])
app.include_router(health.router, prefix="/health", tags=["Health"])

os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")


@app.get("/")
def root():
    return {
        "auth": [
            "/auth/register",
            "/auth/register/confirm",
            "/auth/login",
            "/auth/logout",
            "/auth/me",
            "/auth/reset_password",
            "/auth/reset_email",
        ],
        "users": ["/users"],
        "products": ["/products", "/products/search", "/products/{id}"],
        "cart": ["/cart", "/cart/add", "/cart/update/{id}", "/cart/remove/{id}"],
        "orders": ["/orders", "/orders/history", "/orders/{id}", "/orders/{id}/slip", "/payment"],
        "returns": ["/orders/return", "/orders/return/{id}", "/return_requests"],
        "special_orders": ["/special-orders", "/special-orders/{id}", "/cancel-special-orders"],
        "special_returns": ["/return-special-orders", "/returnspecialrequest"],
    }
