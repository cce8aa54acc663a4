"""
SQLAlchemy ORM models package.

All models are imported here so that Base.metadata knows every table before
create_all() runs, and so other modules can import from growthfund.models.
"""

from growthfund.models.user import User, UserType  # noqa: F401
from growthfund.models.account import Account  # noqa: F401
from growthfund.models.one_time_code import OneTimeCode, CodePurpose, CodeStatus  # noqa: F401
from growthfund.models.transaction import (  # noqa: F401
    Transaction,
    TransactionKind,
    TransactionStatus,
)
from growthfund.models.app_setting import AppSetting, DAILY_INTEREST_RATE_KEY  # noqa: F401
from growthfund.models.withdrawal_feedback import (  # noqa: F401
    WithdrawalFeedback,
    WithdrawalReason,
    ReinvestPlan,
)
