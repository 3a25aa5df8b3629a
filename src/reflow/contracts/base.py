"""Base contract enforcement utility."""

from reflow.contracts.failure import ContractViolation


def require(condition: bool, message: str) -> None:
    """Enforce a pipeline contract.

    Called at stage boundaries to verify the preceding stage produced the
    guaranteed invariants. No recovery, no fallback.

    Raises
    ------
    ContractViolation
        If condition is False.

    Examples
    --------
    >>> require(isinstance(df, pd.DataFrame), "Parse contract: DataFrame expected")
    """
    if not condition:
        raise ContractViolation(message)
