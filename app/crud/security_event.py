from app.crud.base import CRUDBase
from app.models.security_event import SecurityEvent
from app.schemas.security_event import SecurityEventCreate

class CRUDSecurityEvent(CRUDBase[SecurityEvent, SecurityEventCreate, SecurityEventCreate]):
    pass


security_event = CRUDSecurityEvent(SecurityEvent)
