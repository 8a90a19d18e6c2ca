"""
CLRebalancer - Exceptions
Error taxonomy shared by the rebalance engine and the bot loop
"""


class RebalancerError(Exception):
    """Base class for all rebalancer errors"""
    pass


class ConfigurationError(RebalancerError):
    """Raised when required settings are missing or invalid"""
    pass


class StateReadError(RebalancerError):
    """Raised when pool or position state cannot be read"""
    pass


class PositionNotFound(RebalancerError):
    """Raised when the configured position id is not owned by the wallet"""

    def __init__(self, position_id: str, detail: str = ""):
        message = f"Position {position_id} not found"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.position_id = position_id


class ConsolidationFailed(RebalancerError):
    """Raised when balance records stay fragmented after a merge"""

    def __init__(self, asset_type: str, record_count: int, reason: str = ""):
        message = f"Balance records for {asset_type} still fragmented ({record_count} records)"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.asset_type = asset_type
        self.record_count = record_count


class TransactionExecutionError(RebalancerError):
    """Raised when the ledger reports a non-success status or the submit call fails"""

    def __init__(self, operation: str, message: str, digest: str = None):
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation
        self.digest = digest


class InsufficientBalanceError(RebalancerError):
    """Raised when the wallet cannot fund a new position"""
    pass
