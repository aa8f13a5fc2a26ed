"""
Domain errors. Every error carries a ``user_message`` that can be sent to the
end user as-is; anything that is not a ``HushPayError`` is treated as an
internal failure by the transport layer.
"""
from decimal import Decimal


class HushPayError(Exception):
    user_message = "Something went wrong. Try again."

    def __init__(self, user_message: str | None = None):
        if user_message is not None:
            self.user_message = user_message
        super().__init__(self.user_message)


class InvalidIdentifier(HushPayError):
    user_message = "Invalid phone number. Use international format, e.g. +2348012345678."


class ComplianceBlocked(HushPayError):
    def __init__(self, reason: str | None = None):
        self.reason = reason or "Address flagged for compliance"
        super().__init__(f"Transfer blocked: {self.reason}. No funds were moved.")


class InsufficientBalance(HushPayError):
    def __init__(self, token: str, available: Decimal, required: Decimal):
        self.token = token
        self.available = available
        self.required = required
        self.shortfall = required - available
        self.suggested_top_up = self.shortfall
        super().__init__(
            f"Insufficient balance. You have {available:f} {token} but need {required:f} {token} "
            f"(amount + fee).\nTop up at least {self.suggested_top_up:f} {token} and try again."
        )


class ProviderError(HushPayError):
    def __init__(self, error: str, provider: str = "provider"):
        self.error = error
        self.provider = provider
        super().__init__(f"Transfer failed: {error}\nReply RETRY to try again.")


class RecipientAddressMissing(HushPayError):
    def __init__(self, chain: str):
        self.chain = chain
        super().__init__(
            f"For cross-chain to {chain.title()}, I need the recipient's address.\n\n"
            "Please provide the 0x... address."
        )


class AmountTooSmall(HushPayError):
    def __init__(self, amount: Decimal, minimum: Decimal, token: str):
        self.amount = amount
        self.minimum = minimum
        super().__init__(
            f"Amount too small. Network fees would eat most of {amount:f} {token}. "
            f"Minimum is {minimum:f} {token}."
        )


class ExpiredOrMissingAction(HushPayError):
    user_message = "Link expired or invalid. Start again from chat."


class StepUpInvalid(HushPayError):
    def __init__(self, user_message: str, attempts_left: int | None = None):
        self.attempts_left = attempts_left
        super().__init__(user_message)
