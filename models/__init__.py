from .db import db
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .session import Session
from .time_block import TimeBlock
from .interval import Interval
from .appointment import Appointment
