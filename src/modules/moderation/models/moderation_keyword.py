import uuid

from sqlalchemy import Boolean, Enum, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database import Base
from src.modules.moderation.enums import RuleAction


class ModerationKeyword(Base):
    """Keyword rule managed by moderators. Read-only for the gateway."""

    __tablename__ = "moderation_keywords"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    keyword: Mapped[str] = mapped_column(String(2000), nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    action: Mapped[RuleAction] = mapped_column(
        Enum(RuleAction, name="rule_action_enum", values_callable=lambda e: [m.value for m in e]),
        default=RuleAction.FLAG,
        nullable=False,
    )
    is_regex: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
