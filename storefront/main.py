# storefront/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI

from storefront.core.config import get_settings
from storefront.core.local_storage import LocalStorage
from storefront.core.supabase_client import supabase_admin
from storefront.dependencies import Services
from storefront.repositories.cart_repo import CartRepository
from storefront.repositories.order_repo import OrderRepository
from storefront.repositories.product_repo import ProductRepository
from storefront.repositories.user_repo import RoleRepository
from storefront.services.cart_sessions import CartSessionRegistry
from storefront.services.order_service import OrderService
from storefront.services.role_service import RoleService

# Routers
from storefront.routers.cart import router as cart_router
from storefront.routers.orders import router as orders_router

settings = get_settings()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")


async def build_services() -> Services:
    """
    Wire repositories and services on the service-role client.

    Every query is scoped to the user id taken from the verified JWT, so
    the API reads and writes as the service role rather than as anon.
    """
    client = await supabase_admin()
    product_repo = ProductRepository(client, settings.PRODUCTS_TABLE)
    return Services(
        carts=CartSessionRegistry(
            CartRepository(client, settings.CART_TABLE),
            LocalStorage(settings.LOCAL_STORAGE_PATH),
            settings.CART_STORAGE_KEY,
            max_sessions=settings.CART_SESSION_LIMIT,
            idle_seconds=settings.CART_SESSION_IDLE_SECONDS,
        ),
        products=product_repo,
        orders=OrderService(OrderRepository(client, settings.ORDERS_TABLE), product_repo),
        roles=RoleService(RoleRepository(client, settings.ROLES_TABLE), settings.ADMIN_EMAILS),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Create the Supabase client and the service graph.

    Shutdown:
      - Close every open cart session (realtime channels).
    """
    logger.info("🔄 Startup: Connecting to Supabase...")
    if getattr(app.state, "services", None) is None:
        try:
            app.state.services = await build_services()
            logger.info("✅ Startup: Supabase client ready.")
        except Exception as e:
            logger.error(f"❌ Startup: Supabase client FAILED: {e}")
            raise
    yield
    await app.state.services.carts.close_all()


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME or "GPU Storefront API",
        version="0.1.0",
        lifespan=lifespan,
    )

    # --- CORS configuration ---
    origins = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
    ]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Versioned API prefix, e.g. /api/v1
    app.include_router(cart_router, prefix=settings.API_V1_STR)
    app.include_router(orders_router, prefix=settings.API_V1_STR)

    @app.get("/")
    def root():
        """Health check endpoint."""
        return {"status": "ok", "service": "gpu-storefront"}

    return app


app = create_app()
