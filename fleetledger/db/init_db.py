"""
Create the settlement tables: python -m fleetledger.db.init_db
"""
import logging
from fleetledger.core.logging_config import setup_logging
from fleetledger.db.session import init_db

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    setup_logging()
    logger.info("Creating FleetLedger tables...")
    init_db()
    logger.info("Tables ready")
