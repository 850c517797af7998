# export_certificate_service/app/__init__.py
import logging

logger = logging.getLogger(__name__)
logger.info("Export Certificate App Initialized")
