"""awayline: Telegram notifications, approvals and AFK commands for unattended sessions."""
from __future__ import annotations

__version__ = "0.3.0"

# Re-export the primary entry points
from awayline.afk import AfkStateMachine  # noqa: F401
from awayline.approval import ApprovalCoordinator, parse_approval_id  # noqa: F401
from awayline.batcher import MessageBatcher, batch_notifications  # noqa: F401
from awayline.client import ChatClient  # noqa: F401
from awayline.config import load_settings  # noqa: F401
from awayline.errors import (  # noqa: F401
    ApprovalError,
    ApprovalEvictedError,
    ApprovalNotFoundError,
    AwaylineError,
    ConfigError,
    TransportError,
)
from awayline.listener import MessageListener  # noqa: F401
from awayline.ratelimit import RateLimiter  # noqa: F401
from awayline.telegram import TelegramTransport  # noqa: F401
from awayline.timing import CheckInterval, Clock  # noqa: F401
from awayline.transport import ChatTransport  # noqa: F401
