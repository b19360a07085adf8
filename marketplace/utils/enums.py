from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    SELLER = "seller"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TransitionAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    OVERRIDE = "override"    # admin sets any status directly
    RESUBMIT = "resubmit"    # seller edit sends the product back to review
