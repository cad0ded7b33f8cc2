from sqlalchemy import Column, String, DateTime, Text
from datetime import datetime

from siwes_portal.core.database import Base
from siwes_portal.core.types import GUID, generate_uuid


class ITFForm(Base):
    """Metadata for a document uploaded by an admin for students to download"""
    __tablename__ = "itf_forms"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    file_url = Column(String(500), nullable=False)
    file_name = Column(String(255), nullable=True)
    uploaded_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    @property
    def stored_name(self) -> str:
        """Name of the file on disk, taken from the public URL"""
        return self.file_url.rsplit("/", 1)[-1]
