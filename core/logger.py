"""
Configure the logger shared by the store, the sweeper and the scripts
"""

import logging
from core.config import get_settings

logging.basicConfig(
    level=get_settings().LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(get_settings().APP_NAME.lower())
