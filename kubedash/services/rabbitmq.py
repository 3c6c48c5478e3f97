"""
RabbitMQ Service - Broker overview and queue listing from the management API.
"""

import logging
import requests
from typing import Any, Dict, Optional

from kubedash.config import Settings
from kubedash.core.management_decoder import decode_overview, decode_queue_page
from kubedash.models.rabbitmq import BrokerOverview, QueuePage

logger = logging.getLogger(__name__)


class RabbitMQException(Exception):
    """Custom exception for RabbitMQ management API errors."""
    pass


class RabbitMQClient:
    """A client for the RabbitMQ management HTTP API."""

    def __init__(self, settings: Settings):
        self.base_url = settings.RABBITMQ_URL.rstrip('/')
        self.auth = (settings.RABBITMQ_USERNAME, settings.RABBITMQ_PASSWORD)
        self.timeout = settings.RABBITMQ_TIMEOUT

    def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = requests.get(url, params=params, auth=self.auth, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.JSONDecodeError as e:
            raise RabbitMQException(f"RabbitMQ returned a non-JSON response: {e}") from e
        except requests.exceptions.Timeout as e:
            raise RabbitMQException(f"Request to RabbitMQ timed out: {e}") from e
        except requests.exceptions.HTTPError as e:
            raise RabbitMQException(f"HTTP error occurred: {e} - {e.response.text}") from e
        except requests.exceptions.RequestException as e:
            raise RabbitMQException(f"An error occurred while querying RabbitMQ: {e}") from e


class RabbitMQService:
    def __init__(self, client: RabbitMQClient):
        self.client = client

    def overview(self, lengths_age: int = 60, lengths_incr: int = 5,
                 msg_rates_age: int = 60, msg_rates_incr: int = 5) -> BrokerOverview:
        """
        Broker counters and rates, with history covering the last `*_age`
        seconds sampled every `*_incr` seconds.
        """
        payload = self.client.get("/api/overview", params={
            "lengths_age": lengths_age,
            "lengths_incr": lengths_incr,
            "msg_rates_age": msg_rates_age,
            "msg_rates_incr": msg_rates_incr,
        })
        overview = decode_overview(payload)
        if "message_stats" not in payload:
            logger.info("RabbitMQ reported no message_stats; rates are 0")
        return overview

    def queues(self, page: int = 1, page_size: int = 100) -> QueuePage:
        """One page of queues, in the broker's listing order."""
        payload = self.client.get("/api/queues", params={
            "page": page,
            "page_size": page_size,
            "use_regex": "false",
            "pagination": "true",
        })
        result = decode_queue_page(payload)
        logger.debug("Fetched %d queues (page %d of %d)", len(result.items), result.page, result.page_count)
        return result
