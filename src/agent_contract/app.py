"""
Agent Fitness API Server
Core functionality: schema catalog, NL translation, scenario batches, fitness runs
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from agent_contract.api.routes import agent_contract, health
from agent_contract.catalog.registry import load_schema_catalog_or_empty
from agent_contract.config.settings import configure_logging, get_config
from agent_contract.fitness.rest_client import RestClient
from agent_contract.utils.error_handling import setup_error_handling

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    config = get_config()
    configure_logging(config)
    await load_schema_catalog_or_empty(RestClient(config))
    yield


# FastAPI app initialization
app = FastAPI(
    title="Agent Fitness Engine",
    description="Natural-language command translation and multi-suite fitness runs against the agent API",
    version="1.0.0",
    lifespan=lifespan,
)

# Setup centralized error handling
setup_error_handling(app)

# Include API routes
app.include_router(health.router, tags=["Health"])
app.include_router(agent_contract.router, prefix="/api/v1/agent", tags=["Agent Contract"])

# FastAPI app instance is exported for use by uvicorn
# Server startup is handled by main.py at the project root
