"""
WhatsApp Client - Selenium-Based WhatsApp Web Automation
=========================================================

Low-level browser driver: login/pairing, opening chats, reading message
rows, sending text and files. Chat and sender addresses are read from the
`data-id` attribute WhatsApp Web puts on every message row:

    false_628123456789@c.us_3EB0C0FFEE          (incoming, 1:1 chat)
    true_628123456789@c.us_3EB0C0FFEE           (sent from this account)
    false_1203630@g.us_3EB0C0FFEE_628123@c.us   (group message)
"""

import logging
import random
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from selenium import webdriver
from selenium.webdriver.common.by import By
from selenium.webdriver.common.keys import Keys
from selenium.webdriver.chrome.service import Service as ChromeService
from selenium.webdriver.support.ui import WebDriverWait
from selenium.webdriver.support import expected_conditions as EC
from selenium.common.exceptions import (
    NoSuchElementException,
    TimeoutException,
    WebDriverException,
    StaleElementReferenceException,
)
from webdriver_manager.chrome import ChromeDriverManager

from ..config import WhatsAppSettings, get_settings

logger = logging.getLogger(__name__)


class WhatsAppClientError(Exception):
    """Base exception for WhatsApp client errors."""
    pass


class WhatsAppBlockedError(WhatsAppClientError):
    """Raised when WhatsApp shows blocking/warning indicators."""
    pass


@dataclass(frozen=True)
class RawMessage:
    """One message row as read from the DOM."""
    message_id: str
    chat_id: str
    from_me: bool
    text: str


def parse_data_id(data_id: str) -> Optional[tuple]:
    """'false_628123@c.us_ABC' -> (False, '628123@c.us', 'ABC'); None if unrecognised."""
    parts = (data_id or "").split("_")
    if len(parts) < 3 or parts[0] not in ("true", "false") or "@" not in parts[1]:
        return None
    return parts[0] == "true", parts[1], parts[2]


class WhatsAppClient:
    """
    Selenium-based WhatsApp Web client.
    """

    SELECTORS = {
        "search_box": 'div[contenteditable="true"][data-tab="3"]',
        "message_input": 'div[contenteditable="true"][data-tab="10"]',
        "message_input_alt": 'footer div[contenteditable="true"]',

        # Pairing QR code container; data-ref holds the pairing payload
        "qr_code": "div[data-ref]",

        # Message rows carry sender/chat in data-id
        "message_row": "div[data-id]",

        # Chat list and unread badges
        "chat_list": "#pane-side",
        "unread_badge": '#pane-side span[aria-label*="unread"]',
        "chat_row": 'div[role="listitem"]',

        # Attachments
        "attach_button": 'div[title="Attach"], span[data-icon="plus"], span[data-icon="attach-menu-plus"]',
        "file_input": 'input[type="file"]',
        "send_button": 'span[data-icon="send"], div[aria-label="Send"]',
    }

    BLOCK_INDICATORS = [
        "temporarily banned",
        "account is temporarily",
        "verify your phone",
        "unusual activity",
    ]

    def __init__(self, settings: Optional[WhatsAppSettings] = None):
        self._settings = settings or get_settings().whatsapp

        self.driver = self._create_driver(self._settings.headless, self._settings.profile_dir)
        self._navigate_to_whatsapp()

    def _create_driver(self, headless: bool, profile_dir: Path) -> webdriver.Chrome:
        """Create and configure Chrome WebDriver."""
        options = webdriver.ChromeOptions()

        if headless:
            options.add_argument("--headless=new")
            options.add_argument("--window-size=1920,1080")
        else:
            options.add_argument("--start-maximized")

        options.add_argument("--disable-gpu")
        options.add_argument("--no-sandbox")
        options.add_argument("--disable-dev-shm-usage")

        # Persistent profile keeps the WhatsApp login between runs
        profile = Path(profile_dir).resolve()
        options.add_argument(f"--user-data-dir={profile}")
        logger.info(f"Using Chrome profile at: {profile}")

        service = ChromeService(ChromeDriverManager().install())
        return webdriver.Chrome(service=service, options=options)

    def _navigate_to_whatsapp(self) -> None:
        """Navigate to WhatsApp Web."""
        self.driver.get("https://web.whatsapp.com/")
        logger.info("Opened WhatsApp Web")

    def _random_delay(self, min_s: float = 0.3, max_s: float = 0.8) -> None:
        """Add human-like random delay."""
        time.sleep(random.uniform(min_s, max_s))

    def _check_for_blocks(self) -> bool:
        """Check page for blocking/warning indicators."""
        try:
            page_text = self.driver.page_source.lower()
            for indicator in self.BLOCK_INDICATORS:
                if indicator in page_text:
                    logger.error(f"Block indicator detected: {indicator}")
                    return True
            return False
        except WebDriverException:
            return False

    # ── Login / pairing ────────────────────────────────────────────

    def is_logged_in(self) -> bool:
        return bool(self.driver.find_elements(By.CSS_SELECTOR, self.SELECTORS["search_box"]))

    def read_pairing_code(self) -> Optional[str]:
        """Current QR payload on the login screen, or None."""
        try:
            element = self.driver.find_element(By.CSS_SELECTOR, self.SELECTORS["qr_code"])
            return element.get_attribute("data-ref") or None
        except (NoSuchElementException, StaleElementReferenceException):
            return None

    def wait_for_login(
        self,
        timeout: int = 300,
        on_qr: Optional[Callable[[str], None]] = None,
        poll_interval: float = 1.0,
    ) -> bool:
        """
        Wait until chats are loaded, reporting each new QR payload to on_qr.
        WhatsApp rotates the QR code every ~20 seconds.
        """
        logger.info(f"Waiting up to {timeout}s for WhatsApp login...")
        deadline = time.time() + timeout
        last_code = None

        while time.time() < deadline:
            if self.is_logged_in():
                logger.info("WhatsApp Web loaded successfully")
                return True

            code = self.read_pairing_code()
            if code and code != last_code:
                last_code = code
                if on_qr:
                    on_qr(code)

            time.sleep(poll_interval)

        logger.error("Timeout waiting for WhatsApp login")
        return False

    # ── Chats ──────────────────────────────────────────────────────

    def open_chat(self, phone: str) -> bool:
        """Open chat with a phone number via the search box."""
        if self._check_for_blocks():
            raise WhatsAppBlockedError("WhatsApp blocking detected")

        try:
            search_box = self._find_search_box()
            if not search_box:
                return False

            search_box.click()
            search_box.send_keys(Keys.CONTROL + "a")
            search_box.send_keys(Keys.BACKSPACE)
            search_box.send_keys(phone)

            time.sleep(2)
            search_box.send_keys(Keys.ENTER)

            WebDriverWait(self.driver, 10).until(
                EC.presence_of_element_located((By.CSS_SELECTOR, self.SELECTORS["message_input_alt"]))
            )
            logger.debug(f"Chat opened: {phone}")
            return True

        except TimeoutException:
            logger.warning(f"Could not verify chat opened for: {phone}")
            return False
        except WebDriverException as e:
            logger.exception(f"Failed to open chat: {e}")
            return False

    def open_next_unread_chat(self) -> Optional[int]:
        """
        Click the first chat with an unread badge.

        Returns:
            Unread count shown on the badge, or None if no chat is unread.
        """
        try:
            badges = self.driver.find_elements(By.CSS_SELECTOR, self.SELECTORS["unread_badge"])
            for badge in badges:
                count_text = (badge.text or "").strip()
                if not count_text.isdigit():
                    continue
                row = badge.find_element(By.XPATH, "./ancestor::div[@role='listitem']")
                row.click()
                time.sleep(1)
                return int(count_text)
        except (NoSuchElementException, StaleElementReferenceException) as e:
            logger.debug(f"Unread chat lookup failed: {e}")
        return None

    def _find_search_box(self):
        """Find the search box element."""
        try:
            return self.driver.find_element(By.CSS_SELECTOR, self.SELECTORS["search_box"])
        except NoSuchElementException:
            elements = self.driver.find_elements(By.CSS_SELECTOR, 'div[contenteditable="true"]')
            return elements[0] if elements else None

    def _find_message_input(self):
        """Find the message input box with multiple fallback selectors."""
        selectors_to_try = [
            self.SELECTORS["message_input"],
            self.SELECTORS["message_input_alt"],
            'div[title="Type a message"]',
        ]

        for selector in selectors_to_try:
            try:
                return self.driver.find_element(By.CSS_SELECTOR, selector)
            except NoSuchElementException:
                continue

        return None

    # ── Sending ────────────────────────────────────────────────────

    def send_message(self, text: str) -> bool:
        """Send a message in the current chat. Newlines become Shift+Enter."""
        try:
            input_box = self._find_message_input()
            if not input_box:
                logger.error("Could not find message input box")
                return False

            input_box.click()
            lines = text.split("\n")
            for i, line in enumerate(lines):
                if line:
                    input_box.send_keys(line)
                if i < len(lines) - 1:
                    input_box.send_keys(Keys.SHIFT + Keys.ENTER)

            self._random_delay()
            input_box.send_keys(Keys.ENTER)

            logger.debug(f"Sent message: {text[:50]}...")
            return True

        except WebDriverException as e:
            logger.exception(f"Failed to send message: {e}")
            return False

    def send_file(self, path: Path, caption: str = "") -> bool:
        """Attach a document to the current chat and send it."""
        try:
            attach = self.driver.find_element(By.CSS_SELECTOR, self.SELECTORS["attach_button"])
            attach.click()
            self._random_delay()

            file_input = self.driver.find_element(By.CSS_SELECTOR, self.SELECTORS["file_input"])
            file_input.send_keys(str(Path(path).resolve()))

            send_button = WebDriverWait(self.driver, 20).until(
                EC.element_to_be_clickable((By.CSS_SELECTOR, self.SELECTORS["send_button"]))
            )
            if caption:
                caption_box = self.driver.switch_to.active_element
                caption_box.send_keys(caption)
            send_button.click()

            logger.info(f"Sent file: {Path(path).name}")
            return True

        except (TimeoutException, WebDriverException) as e:
            logger.exception(f"Failed to send file {path}: {e}")
            return False

    # ── Reading ────────────────────────────────────────────────────

    def read_messages(self) -> List[RawMessage]:
        """All message rows currently rendered in the open chat, oldest first."""
        messages = []
        try:
            rows = self.driver.find_elements(By.CSS_SELECTOR, self.SELECTORS["message_row"])
        except WebDriverException as e:
            logger.debug(f"Message scan failed: {e}")
            return messages

        for row in rows:
            try:
                parsed = parse_data_id(row.get_attribute("data-id"))
                if not parsed:
                    continue
                from_me, chat_id, msg_id = parsed
                text = self._extract_text_from_message(row)
                if text:
                    messages.append(RawMessage(msg_id, chat_id, from_me, text))
            except StaleElementReferenceException:
                continue

        return messages

    def _extract_text_from_message(self, element) -> Optional[str]:
        """Extract text content from a message element."""
        text_selectors = [
            "span.selectable-text.copyable-text > span",
            "span.selectable-text.copyable-text",
            "span.selectable-text",
            'span[dir="ltr"]',
        ]

        for selector in text_selectors:
            try:
                for text_el in element.find_elements(By.CSS_SELECTOR, selector):
                    text = text_el.text.strip()
                    if text:
                        return text
            except (NoSuchElementException, StaleElementReferenceException):
                continue

        return None

    def close(self) -> None:
        """Close browser and cleanup."""
        try:
            self.driver.quit()
            logger.info("Browser closed")
        except WebDriverException as e:
            logger.warning(f"Error closing browser: {e}")
