"""Bearer token verification."""

import hmac
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Optional, Protocol

from ..errors import UnauthorizedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    user_id: str
    expires_at: Optional[datetime] = None


class IdentityVerifier(Protocol):
    def verify(self, token: str) -> Identity:
        """Resolve a bearer credential to an identity or raise UnauthorizedError."""
        ...


class StaticTokenVerifier:
    """Accepts a fixed set of tokens, each bound to one user id."""

    def __init__(self, tokens: Dict[str, str]):
        self._tokens = {t: uid for t, uid in tokens.items() if t and uid}
        if not self._tokens:
            logger.warning("No API tokens configured; every authenticated request will be rejected")

    @classmethod
    def from_settings(cls, config, env_settings) -> "StaticTokenVerifier":
        tokens = dict(config.auth_tokens)
        if env_settings is not None and env_settings.recallbin_api_token:
            tokens.setdefault(env_settings.recallbin_api_token, env_settings.recallbin_user_id)
        return cls(tokens)

    def verify(self, token: str) -> Identity:
        presented = (token or "").encode("utf-8")
        for expected, user_id in self._tokens.items():
            if hmac.compare_digest(presented, expected.encode("utf-8")):
                return Identity(user_id=user_id)
        raise UnauthorizedError("Invalid or expired token")
