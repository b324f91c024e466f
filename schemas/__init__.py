"""
Pydantic schemas shared by the pipeline stages.

Schemas:
    Contract: One source record (identity, value, opaque payload)
    ContractPage: One fetched page plus end-of-stream information
    FlaggedContract: One classifier finding, one line of the result log
    RiskFactors: Findings grouped by category
    RiskLevel: high | medium | low
"""

from schemas.contracts import (
    Contract,
    ContractPage,
    FlaggedContract,
    RiskFactors,
    RiskLevel,
)

__all__ = [
    "Contract",
    "ContractPage",
    "FlaggedContract",
    "RiskFactors",
    "RiskLevel",
]
