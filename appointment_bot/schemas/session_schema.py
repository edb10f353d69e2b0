"""Per-conversation session state, flow data, and transport message models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field


class ConversationState(str, Enum):
    """Every state a patient conversation can be in."""
    IDLE = "IDLE"
    CITA_NOMBRE = "CITA_NOMBRE"
    CITA_FECHA_FREEFORM = "CITA_FECHA_FREEFORM"
    CITA_FECHA_CONFIRM = "CITA_FECHA_CONFIRM"
    CITA_HORA_FREEFORM = "CITA_HORA_FREEFORM"
    CITA_HORA_CONFIRM = "CITA_HORA_CONFIRM"
    THERAPY_TYPE = "THERAPY_TYPE"
    THERAPY_DETAIL = "THERAPY_DETAIL"
    EMPRESAS_CONFIRM = "EMPRESAS_CONFIRM"
    EMPRESAS_DATOS = "EMPRESAS_DATOS"
    FORGOT_NAME = "FORGOT_NAME"
    FORGOT_DATE = "FORGOT_DATE"
    HUMANO = "HUMANO"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingData(BaseModel):
    """Fields collected by the appointment booking flow."""
    kind: Literal["booking"] = "booking"
    therapy_key: str
    requester_name: Optional[str] = None
    date_text: Optional[str] = None
    date_iso: Optional[str] = None
    date_readable: Optional[str] = None
    time_text: Optional[str] = None
    time_iso: Optional[str] = None
    time_readable: Optional[str] = None


class TherapyData(BaseModel):
    """Therapy the patient asked about while browsing the catalog."""
    kind: Literal["therapy"] = "therapy"
    therapy_key: Optional[str] = None


class ForgotData(BaseModel):
    """Details for recovering a forgotten appointment or meeting link."""
    kind: Literal["forgot"] = "forgot"
    name: Optional[str] = None
    approx_date: Optional[str] = None


class BusinessLeadData(BaseModel):
    """Company contact details for the business services flow."""
    kind: Literal["business_lead"] = "business_lead"
    details: Optional[str] = None


FlowData = Annotated[
    Union[BookingData, TherapyData, ForgotData, BusinessLeadData],
    Field(discriminator="kind"),
]


class Session(BaseModel):
    """
    One conversation's dialogue state.

    ``data`` holds exactly one flow's fields (or nothing), so a state can
    never read values left behind by a different, earlier flow.
    """
    conversation_id: str
    state: ConversationState = ConversationState.IDLE
    data: Optional[FlowData] = None
    last_activity: datetime = Field(default_factory=_utcnow)

    def snapshot(self) -> dict[str, Any]:
        """State and collected fields as plain values."""
        data = self.data.model_dump(exclude={"kind"}, exclude_none=True) if self.data else {}
        return {"state": self.state.value, "data": data}


class InboundMessage(BaseModel):
    """A text message as delivered by the messaging transport.

    In groups only messages that start with the trigger word reach the
    dialogue; ``mentioned_self`` without the trigger earns a usage hint.
    """
    conversation_id: str
    text: str = ""
    is_group_context: bool = False
    mentioned_self: bool = False
    sender_is_self: bool = False


class Reply(BaseModel):
    """An outbound message for the conversation that triggered it."""
    text: str
    media_path: Optional[str] = None
