import uuid
from typing import Any

from sqlalchemy import JSON, Enum, Float, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database import Base
from src.modules.moderation.enums import ContentType, FlagStatus


class ContentFlag(Base):
    """Content judged unsafe or suspicious, pending human review.

    Rows are append-only from the gateway's side: moderating the same content twice
    writes two flags. The review workflow moves ``status`` out of ``pending``.
    """

    __tablename__ = "content_flags"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    content_type: Mapped[ContentType] = mapped_column(
        Enum(ContentType, name="content_type_enum", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    content_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    flag_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    detected_issues: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    status: Mapped[FlagStatus] = mapped_column(
        Enum(FlagStatus, name="flag_status_enum", values_callable=lambda e: [m.value for m in e]),
        default=FlagStatus.PENDING,
        nullable=False,
        index=True,
    )
