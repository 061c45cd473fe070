from enum import Enum


class ValuationStatus(str, Enum):
    pending = "pending"
    on_progress = "on-progress"
    approved = "approved"
    rejected = "rejected"
    rework = "rework"


class ActorRole(str, Enum):
    user = "user"
    manager = "manager"
    admin = "admin"


class ManagerAction(str, Enum):
    approve = "approve"
    reject = "reject"
    rework = "rework"


class AttachmentCategory(str, Enum):
    property = "property"
    location = "location"
    bank = "bank"
    documents = "documents"
    area = "area"


class OptionCategory(str, Enum):
    banks = "banks"
    cities = "cities"
    dsas = "dsas"
    engineers = "engineers"
