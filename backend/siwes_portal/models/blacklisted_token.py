from sqlalchemy import Column, DateTime, Text
from datetime import datetime

from siwes_portal.core.database import Base
from siwes_portal.core.types import GUID, generate_uuid


class BlacklistedToken(Base):
    """A JWT revoked by logout or refresh. Purged once expires_at has passed."""
    __tablename__ = "blacklisted_tokens"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    token = Column(Text, unique=True, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
