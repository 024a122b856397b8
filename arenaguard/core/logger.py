"""
ArenaGuard - Logger Module
==========================

Tree-style structured logging with dated log folders and error alerts.

DESIGN:
    Community mutations (roles, invitations, tickets, moderation) are logged
    as small trees so a single action reads as one block in the log file.

    Key features:
    - Tree-style formatting for structured data visualization
    - Configurable timezone for timestamps (defaults to UTC)
    - Daily log rotation in dated folders with retention cleanup
    - Session tracking with unique run IDs
    - Webhook integration for error alerts
    - File output disabled under TESTING so test runs leave no log folders
"""

import os
import uuid
import aiohttp
import asyncio
from datetime import datetime
from pathlib import Path
from typing import List, Tuple, Optional

from zoneinfo import ZoneInfo


# =============================================================================
# Constants
# =============================================================================

LOGS_DIR = Path(os.getenv("ARENAGUARD_LOG_DIR", "logs"))
"""Directory for all log files, organized by date."""

LOG_RETENTION_DAYS = 7
"""Number of days to retain log directories before cleanup."""

LOG_TZ = ZoneInfo(os.getenv("ARENAGUARD_TIMEZONE", "UTC"))
"""Timezone used for every log timestamp."""

Details = Optional[List[Tuple[str, str]]]


# =============================================================================
# Tree Logger Class
# =============================================================================

class TreeLogger:
    """
    Custom logger with tree-style formatting.

    DESIGN:
        Uses tree-style output (├─ └─) for visual hierarchy.
        Separate error log file for quick troubleshooting.
        Optional webhook notifications for errors with details.

    Attributes:
        run_id: Unique identifier for this process.
        log_file: Path to the main log file (None when file output is off).
        error_file: Path to the error-only log file.
    """

    # =========================================================================
    # Initialization
    # =========================================================================

    def __init__(self) -> None:
        self.run_id: str = str(uuid.uuid4())[:8]
        self._webhook_url: Optional[str] = None
        self.log_file: Optional[Path] = None
        self.error_file: Optional[Path] = None

        if os.getenv("TESTING"):
            return

        today = datetime.now(LOG_TZ).strftime("%Y-%m-%d")
        self.log_dir = LOGS_DIR / today
        self.log_dir.mkdir(parents=True, exist_ok=True)

        self.log_file = self.log_dir / f"ArenaGuard-{today}.log"
        self.error_file = self.log_dir / f"ArenaGuard-Errors-{today}.log"

        self._cleanup_old_logs()
        self._write_session_header()

    def set_webhook(self, url: Optional[str]) -> None:
        """
        Set webhook URL for error notifications.

        Args:
            url: Webhook URL that receives error alerts.
        """
        self._webhook_url = url

    # =========================================================================
    # Log Cleanup
    # =========================================================================

    def _cleanup_old_logs(self) -> None:
        """Remove dated log directories older than the retention period."""
        if not LOGS_DIR.exists():
            return

        now = datetime.now()
        deleted = 0

        for item in LOGS_DIR.iterdir():
            if not item.is_dir():
                continue
            try:
                dir_date = datetime.strptime(item.name, "%Y-%m-%d")
            except ValueError:
                continue  # not a dated folder
            if (now - dir_date).days > LOG_RETENTION_DAYS:
                for f in item.iterdir():
                    f.unlink()
                item.rmdir()
                deleted += 1

        if deleted > 0:
            print(f"[LOG CLEANUP] Removed {deleted} old log directories")

    def _write_session_header(self) -> None:
        header = f"""
============================================================
NEW SESSION - RUN ID: {self.run_id}
[{datetime.now(LOG_TZ).strftime("%Y-%m-%d %H:%M:%S %Z")}]
============================================================
"""
        self._append(self.log_file, header)

    # =========================================================================
    # Core Logging
    # =========================================================================

    def _get_timestamp(self) -> str:
        return datetime.now(LOG_TZ).strftime("[%H:%M:%S %Z]")

    @staticmethod
    def _append(path: Optional[Path], text: str) -> None:
        if path is None:
            return
        with open(path, "a", encoding="utf-8") as f:
            f.write(text)

    def _write(
        self,
        message: str,
        emoji: str = "",
        include_timestamp: bool = True,
        is_error: bool = False,
    ) -> None:
        """
        Write log message to console and file.

        Args:
            message: Log message content.
            emoji: Optional emoji prefix.
            include_timestamp: Whether to prepend timestamp.
            is_error: Whether to also write to error log.
        """
        if include_timestamp:
            timestamp = self._get_timestamp()
            full_message = f"{timestamp} {emoji} {message}" if emoji else f"{timestamp} {message}"
        else:
            full_message = f"{emoji} {message}" if emoji else message

        print(full_message)

        self._append(self.log_file, f"{full_message}\n")
        if is_error:
            self._append(self.error_file, f"{full_message}\n")

    def _write_items(self, items: List[Tuple[str, str]], is_error: bool = False) -> None:
        for i, (key, value) in enumerate(items):
            prefix = "└─" if i == len(items) - 1 else "├─"
            self._write(f"  {prefix} {key}: {value}", include_timestamp=False, is_error=is_error)

    # =========================================================================
    # Tree Formatting
    # =========================================================================

    def tree(
        self,
        title: str,
        items: List[Tuple[str, str]],
        emoji: str = "📦",
    ) -> None:
        """
        Log structured data in tree format.

        Args:
            title: Main heading for the tree.
            items: List of (key, value) tuples to display.
            emoji: Emoji prefix for the title.

        Example output:
            [14:30:45 UTC] 🎟️ Invitation Redeemed
              ├─ Code: 7KQ2M9XA
              ├─ User: u_42
              └─ Uses: 3/10
        """
        self._append(self.log_file, "\n")
        self._write(title, emoji=emoji)
        self._write_items(items)
        self._append(self.log_file, "\n")

    # =========================================================================
    # Log Levels
    # =========================================================================

    def debug(self, msg: str, details: Details = None) -> None:
        """Log debug message (only if DEBUG env var set)."""
        if os.getenv("DEBUG"):
            self._write(msg, "🔍")
            if details:
                self._write_items(details)

    def info(self, msg: str, details: Details = None) -> None:
        self._write(msg, "ℹ️")
        if details:
            self._write_items(details)

    def warning(self, msg: str, details: Details = None) -> None:
        self._write(msg, "⚠️")
        if details:
            self._write_items(details)

    def error(self, msg: str, details: Details = None) -> None:
        """
        Log error message with optional structured details.

        DESIGN:
            Errors with details use tree format for visibility.
            Sent to the webhook if one is configured and a loop is running.
        """
        self._write(msg, "❌", is_error=True)
        if not details:
            return

        self._write_items(details, is_error=True)
        if self._webhook_url:
            try:
                asyncio.get_running_loop().create_task(self._send_webhook_error(msg, details))
            except RuntimeError:
                pass  # no running loop, alert skipped

    # =========================================================================
    # Webhook Integration
    # =========================================================================

    async def _send_webhook_error(
        self,
        title: str,
        details: List[Tuple[str, str]],
    ) -> None:
        """
        Send error notification to the alert webhook.

        Args:
            title: Error title.
            details: List of (key, value) detail tuples.
        """
        if not self._webhook_url:
            return

        payload = {
            "title": f"❌ {title}",
            "fields": [{"name": k, "value": v} for k, v in details],
            "timestamp": datetime.now(LOG_TZ).isoformat(),
            "run_id": self.run_id,
        }

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self._webhook_url,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=10),
                ) as resp:
                    if resp.status >= 300:
                        print(f"Webhook error: {resp.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            print(f"Failed to send webhook: {e}")


# =============================================================================
# Global Instance
# =============================================================================

logger = TreeLogger()
"""Global logger instance for use throughout the application."""


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "logger",
    "TreeLogger",
]
