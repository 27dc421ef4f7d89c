from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from app.core.database import Base, value_enum
from app.core.constants import SecurityEventTypeEnum, SeverityEnum

class SecurityEvent(Base):
    __tablename__ = "attempt_security_events"

    id = Column(Integer, primary_key=True, index=True)
    exam_attempt_id = Column(Integer, ForeignKey("exam_attempts.id", ondelete="CASCADE"), nullable=False, index=True)
    event_type = Column(value_enum(SecurityEventTypeEnum, "security_event_type"), nullable=False)
    severity = Column(value_enum(SeverityEnum, "security_event_severity"), nullable=False, default=SeverityEnum.LOW)
    details = Column(String(1000), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    exam_attempt = relationship("ExamAttempt", back_populates="security_events")

    def __repr__(self):
        return f"<SecurityEvent {self.event_type} for attempt {self.exam_attempt_id}>"
