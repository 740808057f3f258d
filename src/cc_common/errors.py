"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: User/Auth
  2xxx: Wallet
  3xxx: Property / Tranche
  4xxx: Application / Investment
  5xxx: Finalize
  9xxx: System
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: User/Auth ---

class UserNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(1001, f"User not found: {user_id}", 404)


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Invalid or expired token", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Account is disabled", 403)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Administrator privileges required", 403)


class ActingForOtherUserError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "Cannot act on behalf of another user", 403)


# --- 2xxx: Wallet ---

class InsufficientFundsError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient funds: required {required} cents, available {available} cents",
            422,
        )


class InvalidAmountError(AppError):
    def __init__(self, amount: int) -> None:
        super().__init__(2002, f"Amount must be positive, got {amount}", 422)


# --- 3xxx: Property / Tranche ---

class PropertyNotFoundError(AppError):
    def __init__(self, property_id: str) -> None:
        super().__init__(3001, f"Property not found: {property_id}", 404)


class PropertyClosedError(AppError):
    def __init__(self, property_id: str, status: str) -> None:
        super().__init__(3002, f"Property {property_id} is closed (status={status})", 422)


class NoActiveTrancheError(AppError):
    def __init__(self, property_id: str) -> None:
        super().__init__(3003, f"No active payment tranche for property {property_id}", 422)


class InsufficientSharesError(AppError):
    def __init__(self, requested: int, available: int) -> None:
        super().__init__(
            3004,
            f"Insufficient shares: requested {requested}, available {available}",
            422,
        )


class InvalidForecastRangeError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3005, f"Invalid forecast range: {detail}", 422)


# --- 4xxx: Application / Investment ---

class ApplicationNotFoundError(AppError):
    def __init__(self, application_id: str) -> None:
        super().__init__(4001, f"Application not found: {application_id}", 404)


class ApplicationNotPendingError(AppError):
    def __init__(self, application_id: str, status: str) -> None:
        super().__init__(
            4002, f"Application {application_id} in status {status} cannot be changed", 422
        )


class InvalidApprovedSharesError(AppError):
    def __init__(self, approved: int, requested: int) -> None:
        super().__init__(
            4003,
            f"Approved shares must be between 1 and {requested}, got {approved}",
            422,
        )


class NoNextTrancheError(AppError):
    def __init__(self, application_id: str) -> None:
        super().__init__(4004, f"No later tranche to carry application {application_id} to", 422)


class InvestmentNotFoundError(AppError):
    def __init__(self, investment_id: str) -> None:
        super().__init__(4005, f"Investment not found: {investment_id}", 404)


class InvestmentNotCancellableError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(4006, f"Investment cannot be cancelled: {detail}", 422)


class InvalidShareQuantityError(AppError):
    def __init__(self, shares: int) -> None:
        super().__init__(4007, f"Requested shares must be positive, got {shares}", 422)


# --- 5xxx: Finalize ---

class DeadlineNotReachedError(AppError):
    def __init__(self, property_id: str) -> None:
        super().__init__(
            5001, f"Application deadline for property {property_id} has not passed", 422
        )


class PaymentPlanUnderfundedError(AppError):
    def __init__(self, paid_bps: int, required_bps: int) -> None:
        super().__init__(
            5002,
            f"Payment plan underfunded: {paid_bps / 100:.2f}% paid, "
            f"{required_bps / 100:.2f}% required",
            422,
        )


# --- 9xxx: System ---

class ConcurrentUpdateError(AppError):
    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(9001, f"Concurrent update detected on {entity} {entity_id}", 409)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
