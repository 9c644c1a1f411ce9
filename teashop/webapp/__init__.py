# teashop/webapp/__init__.py

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from teashop.utils.error_handler import setup_error_handlers
from .api.store import router as store_router
from .api.orders import router as orders_router
from .api.admin import router as admin_router

app = FastAPI(title="Bubble Tea Shop")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(store_router)
app.include_router(orders_router)
app.include_router(admin_router)

setup_error_handlers(app)
