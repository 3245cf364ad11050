"""
Huggy API client.

Lists chats and chat messages through the v2 REST API. Both collections are
paginated by page number and fetched one page at a time through a
RateLimitedPager, so the whole run stays within Huggy's rate limits.
"""

import logging
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Callable, List, Optional

import requests
from pydantic import ValidationError

from . import config
from .models import Chat, Message
from .pager import RateLimitedPager

logger = logging.getLogger(__name__)


class HuggyClient:
    """Client for the Huggy chats and messages endpoints."""

    # HTTP timeout: (connect_timeout, read_timeout) in seconds
    DEFAULT_TIMEOUT = (10, 30)

    # Transient failures are retried: 3 retries with 2s base = 2s, 4s, 8s
    MAX_RETRIES = config.HTTP_MAX_RETRIES
    RETRY_DELAY_BASE = 2
    RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = config.HUGGY_BASE_URL,
        timeout: tuple = None,
        max_retries: int = None,
        max_pages: int = config.MAX_PAGES,
        chat_page_delay: float = config.CHAT_PAGE_DELAY,
        message_page_delay: float = config.MESSAGE_PAGE_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api_key = api_key
        if not self.api_key:
            raise ValueError("HUGGY_API_KEY not set")

        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout or self.DEFAULT_TIMEOUT
        self.max_retries = max_retries if max_retries is not None else self.MAX_RETRIES
        self.sleep = sleep

        self.chat_pager = RateLimitedPager(
            chat_page_delay, max_pages, sleep=sleep, name="chats"
        )
        self.message_pager = RateLimitedPager(
            message_page_delay, max_pages, sleep=sleep, name="messages"
        )

        self.session = requests.Session()
        self.session.headers.update({
            "X-Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        })

    @classmethod
    def from_settings(cls, settings: config.Settings, sleep: Callable[[float], None] = time.sleep):
        return cls(
            api_key=settings.huggy_api_key,
            base_url=settings.huggy_base_url,
            max_retries=settings.http_max_retries,
            max_pages=settings.max_pages,
            chat_page_delay=settings.chat_page_delay,
            message_page_delay=settings.message_page_delay,
            sleep=sleep,
        )

    @staticmethod
    def _parse_retry_after(header_value: str) -> int:
        """
        Parse a Retry-After header (seconds or HTTP-date).

        Returns:
            Number of seconds to wait (minimum 1)
        """
        try:
            return max(1, int(header_value))
        except ValueError:
            try:
                retry_at = parsedate_to_datetime(header_value)
                if retry_at.tzinfo is None:
                    retry_at = retry_at.replace(tzinfo=timezone.utc)
                delta = (retry_at - datetime.now(timezone.utc)).total_seconds()
                return max(1, int(delta))
            except (ValueError, TypeError):
                return 10

    def _get(self, endpoint: str, params: Optional[dict] = None) -> Any:
        """
        GET an endpoint, retrying transient errors.

        Retries on:
        - 429 rate limit (honouring Retry-After)
        - 5xx server errors (500, 502, 503, 504)
        - Connection errors and timeouts

        Does NOT retry other 4xx responses. When retries are exhausted the
        last error is raised.
        """
        url = f"{self.base_url}{endpoint}"

        for attempt in range(self.max_retries + 1):
            try:
                response = self.session.get(url, params=params, timeout=self.timeout)

                if response.status_code in self.RETRYABLE_STATUS_CODES:
                    if attempt < self.max_retries:
                        delay = self.RETRY_DELAY_BASE * (2 ** attempt)
                        if response.status_code == 429:
                            retry_after = response.headers.get("Retry-After")
                            if retry_after:
                                delay = self._parse_retry_after(retry_after)
                            logger.warning(
                                f"Rate limited (429) on {endpoint}, waiting {delay}s "
                                f"(attempt {attempt + 1}/{self.max_retries + 1})"
                            )
                        else:
                            logger.warning(
                                f"Huggy API error {response.status_code} on {endpoint}, "
                                f"retrying in {delay}s (attempt {attempt + 1}/{self.max_retries + 1})"
                            )
                        self.sleep(delay)
                        continue

                response.raise_for_status()
                return response.json()

            except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
                if attempt < self.max_retries:
                    delay = self.RETRY_DELAY_BASE * (2 ** attempt)
                    logger.warning(
                        f"Huggy API connection error: {e}, "
                        f"retrying in {delay}s (attempt {attempt + 1}/{self.max_retries + 1})"
                    )
                    self.sleep(delay)
                else:
                    raise

        raise RuntimeError("Unexpected retry loop exit")

    def _get_page(self, endpoint: str, page: int) -> list:
        data = self._get(endpoint, params={"page": page})
        if data is None:
            return []
        if not isinstance(data, list):
            raise ValueError(
                f"Expected a JSON array from {endpoint} page {page}, got {type(data).__name__}"
            )
        return data

    # ==================== CHATS ====================

    @staticmethod
    def _parse_chats(raw_chats: list) -> List[Chat]:
        chats = []
        for raw in raw_chats:
            try:
                chats.append(Chat.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping malformed chat {raw!r:.200}: {e}")
        return chats

    def list_chats_page(self, page: int) -> List[Chat]:
        """Fetch one page of chats (`GET chats?page=N`)."""
        return self._parse_chats(self._get_page("chats", page))

    def fetch_chats(self) -> List[Chat]:
        """Fetch every chat, page by page."""
        # Page on raw items so a page of malformed records doesn't end paging
        raw_chats = self.chat_pager.fetch_all(lambda page: self._get_page("chats", page))
        chats = self._parse_chats(raw_chats)
        logger.info(f"Fetched {len(chats)} chats")
        return chats

    # ==================== MESSAGES ====================

    @staticmethod
    def _parse_messages(chat_id: str, raw_messages: list) -> List[Message]:
        messages = []
        for raw in raw_messages:
            try:
                messages.append(Message.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping malformed message in chat {chat_id}: {e}")
        return messages

    def list_messages_page(self, chat_id: str, page: int) -> List[Message]:
        """Fetch one page of a chat's messages (`GET chats/{id}/messages?page=N`)."""
        return self._parse_messages(chat_id, self._get_page(f"chats/{chat_id}/messages", page))

    def fetch_messages(self, chat_id: str) -> List[Message]:
        """Fetch every message of a chat, in API arrival order."""
        raw_messages = self.message_pager.fetch_all(
            lambda page: self._get_page(f"chats/{chat_id}/messages", page)
        )
        return self._parse_messages(chat_id, raw_messages)
