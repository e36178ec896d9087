"""
SQLAlchemy ORM models for the source tables.

The tables are written by the messaging/scheduling automation and only read
here. Column names follow the existing schema; attribute names are English.
Timestamps are kept as stored strings and parsed by the analytics core.
For the immutable records the pipelines consume, see records.py.
"""

from sqlalchemy import Column, Integer, String, Text

from copilot_analytics.records import Appointment as AppointmentRecord
from copilot_analytics.records import Message as MessageRecord
from copilot_analytics.storage import Base


class Message(Base):
    """
    One chat log row: text received from the contact, text sent by the
    assistant, or both.

    Table: clientemensagem
    """
    __tablename__ = "clientemensagem"

    id = Column(Integer, primary_key=True, autoincrement=True)
    contact = Column("whatsapp", String, nullable=True, index=True)
    received_text = Column("mensagemrecebida", Text, nullable=True)
    sent_text = Column("mensagemenviada", Text, nullable=True)
    timestamp = Column("datahoramensagem", String, nullable=True, index=True)

    def to_record(self) -> MessageRecord:
        return MessageRecord(
            id=self.id,
            contact=self.contact,
            received_text=self.received_text,
            sent_text=self.sent_text,
            timestamp=self.timestamp,
        )


class Appointment(Base):
    """
    One appointment row.

    Table: clienteagendamento
    `source` ("agendei") is "agendamento cora" for appointments created by the
    assistant and NULL for manual or confirmation-only entries.
    """
    __tablename__ = "clienteagendamento"

    id = Column(Integer, primary_key=True, autoincrement=True)
    contact = Column("whatsapp", String, nullable=True, index=True)
    client_name = Column("nomecliente", String, nullable=True)
    scheduled_at = Column("dataagendamento", String, nullable=True)
    status = Column(String, nullable=True)
    created_at = Column("datacriacao", String, nullable=True, index=True)
    external_id = Column("idagendahd", String, nullable=True)
    source = Column("agendei", String, nullable=True)

    def to_record(self) -> AppointmentRecord:
        return AppointmentRecord(
            id=self.id,
            contact=self.contact,
            scheduled_at=self.scheduled_at,
            status=self.status,
            created_at=self.created_at,
            source=self.source,
            external_id=self.external_id,
            client_name=self.client_name,
        )
