from enum import Enum


class ExpenseKind(str, Enum):
    PERSONAL = "personal"
    GROUP = "group"


class ExpenseShape(str, Enum):
    """How a creation request is handled, decided from the fields it carries."""
    PERSONAL = "personal"
    GROUP_EQUAL = "group_equal"
    GROUP_ADVANCED = "group_advanced"


class SplitType(str, Enum):
    EQUAL = "equal"
    UNEQUAL = "unequal"
    PERCENTAGE = "percentage"
    SHARES = "shares"


# paidBy placeholder when more than one payer contributed
MULTIPLE_PAYERS = "Multiple"

DEFAULT_PAYMENT_METHOD = "Cash"
DEFAULT_CATEGORY = "Other"
