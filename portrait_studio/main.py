"""
Main FastAPI application for the Portrait Studio API.
Serves health, auth, generation, jobs, payments, public views, images and metrics.
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from portrait_studio.core.config import settings
from portrait_studio.core.errors import register_exception_handlers
from portrait_studio.core.logging import configure_logging
from portrait_studio.api.routes import auth, generations, health, images, jobs, payments, public
from portrait_studio.utils.metrics import router as metrics_router


configure_logging()

app = FastAPI(
    title="Portrait Studio API",
    description="Credit-gated AI portrait generation with batch style packs",
    version="1.0.0",
)

# CORS
origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
if not origins:
    origins = ["http://localhost:5173", "http://127.0.0.1:5173", settings.public_base_url]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Routers
app.include_router(health.router, tags=["health"])
app.include_router(auth.router)
app.include_router(generations.router)
app.include_router(jobs.router)
app.include_router(payments.router)
app.include_router(public.router)
app.include_router(images.router)
app.include_router(metrics_router)
