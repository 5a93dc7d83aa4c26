from abc import ABC
from typing import Any, Dict, Optional
import logging


class BaseService(ABC):
    """Base service class providing common functionality"""

    def __init__(self):
        self.logger = logging.getLogger(f"bakehouse.services.{self.__class__.__name__}")

    def log_operation(self, operation: str, data: Dict[str, Any], store_id: Optional[int] = None):
        """Centralized operation logging"""
        self.logger.info("Operation: %s %s", operation, data, extra={
            'operation': operation,
            'data': data,
            'store_id': store_id,
            'service': self.__class__.__name__
        })
