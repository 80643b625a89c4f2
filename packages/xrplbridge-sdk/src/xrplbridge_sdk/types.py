from enum import StrEnum


class TransferStage(StrEnum):
    DEPOSIT_ADDRESS = "deposit_address"
    SEND = "send"
    CONFIRM = "confirm"
    CONVERT = "convert"
    WITHDRAW = "withdraw"
    COMPLETE = "complete"


class ConfirmationState(StrEnum):
    POLLING = "POLLING"
    CONFIRMED = "CONFIRMED"
    TIMED_OUT = "TIMED_OUT"
    CANCELLED = "CANCELLED"


class DepositStatus(StrEnum):
    PENDING = "pending"
    SUCCESS = "success"
    FAIL = "fail"
