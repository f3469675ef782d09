import logging
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from .. import __version__
from ..config.factory import (
    create_activation_service_from_global,
    create_client_from_global,
    create_dns_service_from_global,
)
from ..config.global_config_loader import get_global_config
from .routers import activations, dns


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle"""
    logging.info("Starting edgedeploy API")

    # Services injected beforehand (e.g. by tests) are left alone
    client = None
    if activations._activation_service is None or dns._dns_service is None:
        global_config = get_global_config()
        client = create_client_from_global(global_config)
        if activations._activation_service is None:
            activations.set_activation_service(
                create_activation_service_from_global(global_config, client)
            )
        if dns._dns_service is None:
            dns.set_dns_service(create_dns_service_from_global(global_config, client))
        logging.info(f"Using control plane at {global_config.control_plane.base_url}")

    yield

    logging.info("Shutting down edgedeploy API")
    if client is not None:
        await client.close()
        activations.set_activation_service(None)
        dns.set_dns_service(None)


app = FastAPI(
    title="edgedeploy API",
    description="Activation and DNS change-list management for the CDN control plane",
    version=__version__,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(activations.router)
app.include_router(dns.router)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "edgedeploy-api",
        "version": __version__
    }


def run(host: str = "0.0.0.0", port: int = 8000, log_level: str = "INFO"):
    """Run the API server"""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    logging.info(f"Starting API server on {host}:{port}")

    uvicorn.run(
        "edgedeploy.api.main:app",
        host=host,
        port=port,
        reload=False,
        log_level=log_level.lower()
    )


if __name__ == "__main__":
    config = get_global_config()
    run(config.api.host, config.api.port)
