"""
Entry point for the Agent Fitness Engine API
"""

import sys
import os
import logging

# Add src directory to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from agent_contract.app import app
from agent_contract.config.settings import configure_logging, get_config

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    import uvicorn
    config = get_config()
    configure_logging(config)
    logger.info(f"Starting Agent Fitness Engine on port {config.port}")
    uvicorn.run(app, host="0.0.0.0", port=config.port)
