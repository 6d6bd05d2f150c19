from sqlalchemy import Column, Text
from sqlalchemy.types import TIMESTAMP

from threadbridge.database import Base


class AssistantSession(Base):
    __tablename__ = "assistant_sessions"

    session_key = Column(Text, primary_key=True)  # "<chat_id>:<user_id>"
    thread_id = Column(Text, nullable=False)
    prompt_version = Column(Text)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False)
