"""
Typed failures for the flip engine.

Every command either commits completely or raises one of these; the engine
discards the command's working state whenever a FlipError escapes a handler.
"""
from enum import Enum
from typing import Optional


class ErrorCategory(Enum):
    """Broad class of a failure, used by the HTTP layer to pick a status code."""
    VALIDATION = "validation"
    CAPACITY = "capacity"
    STATE = "state"
    SOLVENCY = "solvency"
    AUTHORIZATION = "authorization"
    OPERATIONAL = "operational"


class FlipError(Exception):
    """Base exception for every engine failure."""

    category = ErrorCategory.STATE
    message = "Flip engine error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)


# === Validation ===

class UnsupportedDenom(FlipError):
    category = ErrorCategory.VALIDATION

    def __init__(self, denom: str):
        self.denom = denom
        super().__init__(f"We do not support this denom = {denom}")


class NoLimitsConfigured(FlipError):
    category = ErrorCategory.VALIDATION

    def __init__(self, denom: str):
        self.denom = denom
        super().__init__(f"Bet limits don't exist for this denom: {denom}")


class BetTooLarge(FlipError):
    category = ErrorCategory.VALIDATION

    def __init__(self, max_limit: str):
        self.max_limit = max_limit
        super().__init__(f"You cannot bet above our limit = {max_limit}")


class BetTooSmall(FlipError):
    category = ErrorCategory.VALIDATION

    def __init__(self, min_limit: str):
        self.min_limit = min_limit
        super().__init__(f"You cannot bet under our limit = {min_limit}")


class WrongFundsSent(FlipError):
    category = ErrorCategory.VALIDATION
    message = "The sent funds hold the wrong amount."


class WrongFundsAmount(FlipError):
    category = ErrorCategory.VALIDATION
    message = "We only support 1 denom at a time."


class InsufficientSenderFunds(FlipError):
    category = ErrorCategory.VALIDATION

    def __init__(self, denom: str):
        self.denom = denom
        super().__init__(f"Sender doesn't have enough funds to attach: denom = {denom}")


class EmptyWithdrawParams(FlipError):
    category = ErrorCategory.VALIDATION
    message = "Expecting an 'index' or 'all' parameter"


class InvalidStreakRewards(FlipError):
    category = ErrorCategory.VALIDATION
    message = "Streak rewards must be non-empty and sorted by streak length"


class NftWinNotMatchLastStreakReward(FlipError):
    category = ErrorCategory.VALIDATION
    message = "NFT winning streak amount must match the last streak reward streak amount"


class InvalidStakeLimits(FlipError):
    category = ErrorCategory.VALIDATION

    def __init__(self, denom: str):
        self.denom = denom
        super().__init__(f"Min bet must not exceed max bet for denom: {denom}")


class InvalidFeeSchedule(FlipError):
    category = ErrorCategory.VALIDATION

    def __init__(self, field_name: str, value: int):
        self.field_name = field_name
        super().__init__(f"Fee {field_name} must be within [0, 10000] bps, got {value}")


# === Capacity ===

class QueueFull(FlipError):
    category = ErrorCategory.CAPACITY
    message = "Block limit reached, please try again in few seconds"


class NftPoolFull(FlipError):
    category = ErrorCategory.CAPACITY
    message = "NFTs rewards pool is full"


class NftIndexOutOfRange(FlipError):
    category = ErrorCategory.CAPACITY
    message = "Index does not exist in the NFT rewards pool"


# === State consistency ===

class AlreadyPending(FlipError):
    category = ErrorCategory.STATE
    message = "You already started a flip, please wait for it to finish."


class NothingToSettle(FlipError):
    category = ErrorCategory.STATE
    message = "There are no flips to do"


class NothingReadyThisBlock(FlipError):
    category = ErrorCategory.STATE
    message = "There are no flips to do this block"


class StreakTooLow(FlipError):
    category = ErrorCategory.STATE

    def __init__(self, min_streak: int):
        self.min_streak = min_streak
        super().__init__(f"Minimum streak is {min_streak}")


class NotEligible(FlipError):
    category = ErrorCategory.STATE

    def __init__(self, streak: int):
        self.streak = streak
        super().__init__(f"Streak ({streak}) not eligible for reward")


class DenomAlreadyExists(FlipError):
    category = ErrorCategory.STATE
    message = "Denom already exists on the contract"


class DenomNotFound(FlipError):
    category = ErrorCategory.STATE

    def __init__(self, denom: str):
        self.denom = denom
        super().__init__(f"Denom is not in the list of denoms: {denom}")


class DenomStillHasFees(FlipError):
    category = ErrorCategory.STATE

    def __init__(self, denom: str):
        self.denom = denom
        super().__init__(f"Denom still has fees that are not distributed, denom: {denom}")


class NftInPool(FlipError):
    category = ErrorCategory.STATE
    message = "Can't transfer NFT, it's in the pool"


class NoFeesToPay(FlipError):
    category = ErrorCategory.STATE
    message = "Fees to be paid is 0"


class NoExcessFunds(FlipError):
    category = ErrorCategory.STATE
    message = "No excess funds to send"


# === Solvency ===

class InsufficientContractFunds(FlipError):
    category = ErrorCategory.SOLVENCY

    def __init__(self, denom: str):
        self.denom = denom
        super().__init__(f"Contract doesn't have enough funds to pay for the bet: denom = {denom}")


class NotEnoughFundsToPayFees(FlipError):
    category = ErrorCategory.SOLVENCY
    message = "Fees amount to distribute is more than the contract balance"


class MoneyOverflow(FlipError):
    category = ErrorCategory.SOLVENCY

    def __init__(self, op: str):
        self.op = op
        super().__init__(f"Arithmetic overflow in money math ({op})")


# === Authorization ===

class Unauthorized(FlipError):
    category = ErrorCategory.AUTHORIZATION
    message = "Unauthorized"


class UnauthorizedToSendNft(FlipError):
    category = ErrorCategory.AUTHORIZATION
    message = "This address is not allowed to send NFTs to the contract"


# === Operational ===

class Paused(FlipError):
    category = ErrorCategory.OPERATIONAL
    message = "Operation is paused at this moment! Please try again later."


# === Lifecycle ===

class NotInstantiated(FlipError):
    category = ErrorCategory.STATE
    message = "Engine has not been instantiated"


class AlreadyInstantiated(FlipError):
    category = ErrorCategory.STATE
    message = "Engine is already instantiated"
