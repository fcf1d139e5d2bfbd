"""Desktop user agent pool for render sessions.

Desktop browsers only, to match the fixed desktop viewport.
"""

import logging
import random
from collections import deque
from dataclasses import dataclass
from typing import Deque, List, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserAgentInfo:
    """User agent with metadata."""
    user_agent: str
    browser: str  # 'chrome', 'firefox', 'edge'
    version: str
    platform: str  # 'windows', 'mac'


def _build_agents() -> List[UserAgentInfo]:
    agents = []
    for version in range(118, 125):
        agents.append(UserAgentInfo(
            f"Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            f"(KHTML, like Gecko) Chrome/{version}.0.0.0 Safari/537.36",
            "chrome", str(version), "windows",
        ))
        agents.append(UserAgentInfo(
            f"Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
            f"(KHTML, like Gecko) Chrome/{version}.0.0.0 Safari/537.36",
            "chrome", str(version), "mac",
        ))
        agents.append(UserAgentInfo(
            f"Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            f"(KHTML, like Gecko) Chrome/{version}.0.0.0 Safari/537.36 Edg/{version}.0.0.0",
            "edge", str(version), "windows",
        ))
    for version in range(118, 123):
        agents.append(UserAgentInfo(
            f"Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:{version}.0) "
            f"Gecko/20100101 Firefox/{version}.0",
            "firefox", str(version), "windows",
        ))
    return agents


class UserAgentPool:
    """Rotates through realistic desktop user agents, avoiding recent repeats."""

    def __init__(self, recent_size: int = 10):
        self._user_agents: List[UserAgentInfo] = _build_agents()
        self._recent: Deque[str] = deque(maxlen=recent_size)
        logger.debug(f"User agent pool ready with {len(self._user_agents)} agents")

    def get_random(self, browser: Optional[str] = None) -> str:
        """
        Get a random user agent.

        Args:
            browser: Optional browser filter ('chrome', 'firefox', 'edge')

        Returns:
            User agent string
        """
        available = [
            ua for ua in self._user_agents
            if (browser is None or ua.browser == browser)
            and ua.user_agent not in self._recent
        ]
        if not available:
            available = [
                ua for ua in self._user_agents
                if browser is None or ua.browser == browser
            ] or self._user_agents

        selected = random.choice(available)
        self._recent.append(selected.user_agent)
        return selected.user_agent


# Global user agent pool instance
user_agent_pool = UserAgentPool()
