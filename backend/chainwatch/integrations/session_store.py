"""
On-disk persistence of the NSE browser session

Stores cookies, the identity string and the expiry instant as JSON so a
restart inside the trading window can reuse a session that is still valid.
"""
import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from pydantic import AwareDatetime, BaseModel, Field, ValidationError

from chainwatch.logger import logger


class StoredCookie(BaseModel):
    name: str
    value: str
    domain: str = ""
    path: str = "/"


class PersistedSession(BaseModel):
    """Serialized session state"""
    user_agent: Optional[str] = None
    expiry: Optional[AwareDatetime] = None
    cookies: List[StoredCookie] = Field(default_factory=list)
    saved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SessionStore:
    """JSON file store for PersistedSession. Failures are logged, never raised."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[PersistedSession]:
        """Load persisted session state, or None if absent or unreadable."""
        if not self.path.exists():
            logger.info(f"No persisted session at {self.path}")
            return None

        try:
            with open(self.path, "r") as f:
                data = json.load(f)
            state = PersistedSession.model_validate(data)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"Failed to load persisted session: {e}")
            return None

        logger.info(f"Loaded persisted session ({len(state.cookies)} cookies) from {self.path}")
        return state

    def save(self, state: PersistedSession) -> bool:
        """Write session state with owner-only permissions."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w") as f:
                f.write(state.model_dump_json(indent=2))
            os.chmod(self.path, 0o600)
        except OSError as e:
            logger.error(f"Failed to save session state: {e}")
            return False

        logger.debug(f"Saved session state to {self.path}")
        return True

