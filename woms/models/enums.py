from enum import Enum


class Role(str, Enum):
    ADMINISTRATOR = "ADMINISTRATOR"
    MANAGER = "MANAGER"
    WORKER = "WORKER"


class WorkOrderStatus(str, Enum):
    NEW = "NEW"
    ACCEPTED = "ACCEPTED"
    IN_PROGRESS = "IN_PROGRESS"
    ON_HOLD = "ON_HOLD"
    COMPLETED = "COMPLETED"


class WorkOrderPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class NotificationType(str, Enum):
    NEW_ASSIGNMENT = "NEW_ASSIGNMENT"
    NEW_COMMENT = "NEW_COMMENT"
    STATUS_CHANGE = "STATUS_CHANGE"


class OutboxStatus(str, Enum):
    pending = "pending"
    sending = "sending"
    sent = "sent"
    failed = "failed"
